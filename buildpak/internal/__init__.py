"""Entry, environment and TOML writers, an exit handler and TOML helpers."""