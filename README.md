# buildpak

Building blocks for writing cloud native buildpacks in Python.

## Installation

```
pip install buildpak
```

To run the test suite from a checkout:

```
pip install ".[test]"
pytest
```

## Layers (`buildpak.layer`)

- `LayerContributor(name, expected_metadata, expected_types, output)` decides
  whether a layer can be reused. The expected metadata is a mapping or a
  dataclass. It is encoded to TOML and decoded again, then compared with
  `layer.metadata`.
  - A layer that is marked for cache or build counts as not restored when
    `<layer>.toml` exists but the layer directory is missing or empty.
  - When the layer is restored and its metadata matches, the layer is reused.
  - Otherwise the layer directory is removed and recreated, and your function
    is called.
  - Either way, `contribute` returns a copy of the layer with `layer_types` set
    to the expected types.
  - After a rebuild, the returned copy also carries the expected metadata.
  - `equals` compares metadata. Before comparing, it normalises
    `dependency.deprecation_date` to whole seconds in UTC, and it parses that
    value from an ISO string on the layer side.
  - When `output` is given, progress lines (Reusing, Reloading, Contributing)
    are written to it.
- `HelperLayerContributor` installs a helper binary into a launch layer. It
  copies the binary to `<layer>/helper` and symlinks it into `exec.d` under each
  helper name. It then writes a Syft JSON SBOM next to the layer, and
  `as_syft_artifact()` returns the artifact that the SBOM describes.
- `new_helper_layer_contributor(buildpack, *names)` builds a contributor for
  `<buildpack.path>/bin/helper`.
- `new_helper_layer` does the same and also returns a `BOMEntry`.
- `Layer`, `LayerTypes`, `Buildpack`, `BuildpackInfo`, `BuildpackLicense` and
  `BOMEntry` are plain dataclasses.
  - `Layer.name` defaults to the base name of its path.
  - `Layer.sbom_path(format)` returns `<layers>/<name>.sbom.<suffix>`.
  - `Layer.exec_file_path(name)` returns a path under the layer's `exec.d`
    directory.

```python
from buildpak.layer import Layer, LayerContributor, LayerTypes

layer = Layer(path="/layers/my-layer")
contributor = LayerContributor(
    name="My Layer",
    expected_metadata={"version": "1.2.3"},
    expected_types=LayerTypes(launch=True),
)

def build():
    # populate layer.path here
    return layer

layer = contributor.contribute(layer, build)
```

## SBOMs (`buildpak.sbom`)

- `SyftArtifact`, `SyftLocation`, `SyftSource`, `SyftDescriptor`, `SyftSchema`
  and `SyftDependency` model a Syft JSON document.
  - `SyftDependency.write_to(path)` writes the document as compact JSON.
  - `new_syft_dependency(path, artifacts)` fills in the source, descriptor and
    schema for you.
  - `SyftArtifact.hash()` returns a stable hexadecimal ID. Lists are treated as
    sets when the ID is computed.
- `SyftCLISBOMScanner(executor, layers_path, output)` builds the arguments for
  a `syft packages -q -o <format>=<file> ... dir:<scan_dir>` run. It does not
  run anything itself: it passes an `Execution` to the `executor` callable that
  you supply.
  - `scan_layer` targets a layer's SBOM files.
  - `scan_build` and `scan_launch` target `<layers_path>/build.sbom.*` and
    `<layers_path>/launch.sbom.*`.
  - After the executor returns, any CycloneDX file is rewritten without its
    `serialNumber` and `metadata.timestamp`.
- `SBOMFormat` lists the formats: CycloneDX JSON, SPDX JSON and Syft JSON.
  `sbom_format_to_syft_output_format` maps a format to syft's output name.

## Stacks (`buildpak.stack`)

The stack IDs are available as constants, for example `BIONIC_STACK_ID` and
`JAMMY_STATIC_STACK_ID`. Each of these predicates takes a stack ID:

- `is_bionic_stack`
- `is_jammy_stack`
- `is_tiny_stack`
- `is_static_stack`
- `is_shell_present_on_stack`

## Lifecycle writers (`buildpak.internal`)

- `entry_writer.EntryWriter.write(source, destination)` copies a file.
  - It creates the parent directories of the destination.
  - It recreates a symlink as a symlink.
  - It gives the copy mode 0755 if the source has the owner execute bit, and
    0644 otherwise.
- `environment_writer.EnvironmentWriter.write(path, environment)` writes one
  file for each key, in sorted key order.
  - Keys may contain `/` to reach subdirectories.
  - An empty mapping writes nothing.
- `toml_writer.TOMLWriter.write(path, value)` writes a value as TOML.
  - The value can be a mapping, a `LaunchTOML` or a `Store`.
  - For `LaunchTOML` it logs the number of slices, the label keys and the
    process types, with the commands aligned.
  - For `Store` it logs the metadata keys.
  - Logging happens only when `output` is set.
- `exit_handler.ExitHandler` calls `exit_func` with a status code:
  - `pass_()` exits with 0.
  - `fail()` exits with 100.
  - `error(err)` prints the error to `writer`, or to stderr when no writer is
    set, and exits with 1.
- `toml_support.marshal(value)` encodes a mapping or a dataclass as a TOML
  document and drops `None` values.
- `toml_support.match_toml(expected, actual)` reports whether two TOML texts,
  given as `str` or `bytes`, decode to equal values.

## Sherpa utilities (`buildpak.sherpa`)

- `env`:
  - `append_to_env_var` joins the variable's current value and the new values
    with a delimiter.
  - `get_env_required` raises `MissingEnvironmentVariableError` with the message
    `$NAME must be set` when the variable is missing.
  - `get_env_with_default` returns the value, or the default when the variable
    is not set.
  - `resolve_bool_err` accepts `1/t/T/TRUE/true/True` and `0/f/F/FALSE/false/False`,
    ignoring surrounding whitespace. It raises `ValueError` for any other value.
  - `resolve_bool` returns `False` instead of raising.
- `files`:
  - `exists`, `file_exists`, `dir_exists` and `symlink_exists` test a path.
  - `copy_file(open_file, destination)` copies an open file and keeps its mode.
  - `copy_dir(source, destination)` copies a tree and keeps the permissions of
    its directories and files.
- `listing`:
  - `new_file_listing(*roots)` returns `FileEntry(path, mode, sha256)` items
    sorted by path. It skips `.git` directories. It hashes file contents and
    follows symlinks to files.
  - `new_file_listing_hash(*roots)` returns one SHA-256 over that listing.
- `nodejs.nodejs_main_module(path)` returns `main` from `package.json`, or
  `server.js`.
- `runtime`:
  - `execute(func, exit_handler)` runs a function and sends any exception to
    the exit handler.
  - `helpers(helpers, arguments, execd_writer)` picks the `ExecD`
    implementation named by the base name of `arguments[0]`. It writes the
    environment that implementation returns as `KEY="value"` lines. The writer
    defaults to file descriptor 3.

```python
from buildpak.sherpa.env import resolve_bool

if resolve_bool("BP_DEBUG"):
    ...
```

## What this package does not do

- It has no entry point that runs a buildpack's detect and build phases.
- It does not download or cache dependencies, and it has no contributor for
  dependency layers.
- It never starts the `syft` program itself. Scans only happen through the
  executor you pass to `SyftCLISBOMScanner`.