"""Software bill of materials: Syft documents and the syft CLI scanner."""

from __future__ import annotations

import dataclasses
import enum
import json
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, TextIO

_FNV_OFFSET = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3
_MASK64 = (1 << 64) - 1


class SBOMFormat(enum.Enum):
    """SBOM output formats; the value is the file-name suffix."""

    CYCLONEDX_JSON = "cdx.json"
    SPDX_JSON = "spdx.json"
    SYFT_JSON = "syft.json"


_SYFT_OUTPUT_FORMATS = {
    SBOMFormat.CYCLONEDX_JSON: "cyclonedx-json",
    SBOMFormat.SPDX_JSON: "spdx-json",
    SBOMFormat.SYFT_JSON: "json",
}


def sbom_format_to_syft_output_format(format: SBOMFormat) -> str:
    """Return the syft ``-o`` format name for ``format``."""
    return _SYFT_OUTPUT_FORMATS.get(format, "")


def _key(name: str, **kwargs: Any) -> Any:
    return field(metadata={"key": name}, **kwargs)


@dataclass
class SyftLocation:
    """Where an artifact was found."""

    path: str = _key("Path", default="")


@dataclass
class SyftArtifact:
    """A package entry in a Syft document."""

    id: str = _key("ID", default="")
    name: str = _key("Name", default="")
    version: str = _key("Version", default="")
    type: str = _key("Type", default="")
    found_by: str = _key("FoundBy", default="")
    locations: list[SyftLocation] = _key("Locations", default_factory=list)
    licenses: list[str] = _key("Licenses", default_factory=list)
    language: str = _key("Language", default="")
    cpes: list[str] = _key("CPEs", default_factory=list)
    purl: str = _key("PURL", default="")

    def hash(self) -> str:
        """Return a stable identifier derived from every field, lists treated as sets."""
        return f"{_structure_hash(self):x}"


@dataclass
class SyftSource:
    """What was scanned."""

    type: str = _key("Type", default="")
    target: str = _key("Target", default="")


@dataclass
class SyftDescriptor:
    """The tool that produced the document."""

    name: str = _key("Name", default="")
    version: str = _key("Version", default="")


@dataclass
class SyftSchema:
    """The schema the document follows."""

    version: str = _key("Version", default="")
    url: str = _key("URL", default="")


@dataclass
class SyftDependency:
    """A complete Syft JSON document."""

    artifacts: list[SyftArtifact] = _key("Artifacts", default_factory=list)
    source: SyftSource = _key("Source", default_factory=SyftSource)
    descriptor: SyftDescriptor = _key("Descriptor", default_factory=SyftDescriptor)
    schema: SyftSchema = _key("Schema", default_factory=SyftSchema)

    def write_to(self, path: str | os.PathLike) -> None:
        """Write the document as compact JSON to ``path``."""
        output = _dump_json(_to_json(self))
        try:
            fd = os.open(path, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, 0o644)
            with os.fdopen(fd, "w", encoding="utf-8") as out:
                out.write(output)
        except OSError as err:
            raise OSError(f"unable to write to path {os.fspath(path)}\n{err}") from err


def new_syft_dependency(dependency_path: str, artifacts: list[SyftArtifact]) -> SyftDependency:
    """Build a Syft document describing ``artifacts`` found under ``dependency_path``."""
    return SyftDependency(
        artifacts=list(artifacts),
        source=SyftSource(type="directory", target=dependency_path),
        descriptor=SyftDescriptor(name="syft", version="0.32.0"),
        schema=SyftSchema(
            version="1.1.0",
            url="https://raw.githubusercontent.com/anchore/syft/main/schema/json/schema-1.1.0.json",
        ),
    )


@dataclass
class Execution:
    """A command to run, with the streams its output goes to."""

    command: str
    args: list[str] = field(default_factory=list)
    stdout: TextIO | None = None
    stderr: TextIO | None = None


class _SBOMPathProvider(Protocol):
    def sbom_path(self, format: SBOMFormat) -> str: ...


@dataclass
class SyftCLISBOMScanner:
    """Scans directories with the syft CLI through ``executor``.

    ``layers_path`` is the layers directory holding the build and launch SBOM files.
    """

    executor: Callable[[Execution], object]
    layers_path: str
    output: TextIO | None = None

    def scan_layer(self, layer: _SBOMPathProvider, scan_dir: str, *formats: SBOMFormat) -> None:
        """Scan ``scan_dir`` into the SBOM files of ``layer``."""
        self._scan(layer.sbom_path, scan_dir, formats)

    def scan_build(self, scan_dir: str, *formats: SBOMFormat) -> None:
        """Scan ``scan_dir`` into the build SBOM files."""
        self._scan(lambda f: self._layers_sbom_path("build", f), scan_dir, formats)

    def scan_launch(self, scan_dir: str, *formats: SBOMFormat) -> None:
        """Scan ``scan_dir`` into the launch SBOM files."""
        self._scan(lambda f: self._layers_sbom_path("launch", f), scan_dir, formats)

    def _layers_sbom_path(self, kind: str, format: SBOMFormat) -> str:
        return os.path.join(self.layers_path, f"{kind}.sbom.{format.value}")

    def _scan(
        self,
        sbom_path: Callable[[SBOMFormat], str],
        scan_dir: str,
        formats: tuple[SBOMFormat, ...],
    ) -> None:
        args = ["packages", "-q"]
        for format in formats:
            args += ["-o", f"{sbom_format_to_syft_output_format(format)}={sbom_path(format)}"]
        args.append(f"dir:{scan_dir}")

        try:
            self.executor(
                Execution(command="syft", args=args, stdout=self.output, stderr=self.output)
            )
        except Exception as err:
            raise RuntimeError(f"unable to run `syft {' '.join(args)}`\n{err}") from err

        # CycloneDX output carries a timestamp and a random serial number
        for format in formats:
            if format is SBOMFormat.CYCLONEDX_JSON:
                _make_cyclonedx_reproducible(sbom_path(format))


def _make_cyclonedx_reproducible(path: str) -> None:
    try:
        with open(path, encoding="utf-8") as f:
            document = json.load(f)
    except OSError as err:
        raise OSError(f"unable to read CycloneDX JSON file {path}\n{err}") from err
    except json.JSONDecodeError as err:
        raise ValueError(f"unable to decode CycloneDX JSON {path}\n{err}") from err
    if not isinstance(document, dict):
        raise ValueError(f"unable to decode CycloneDX JSON {path}")

    document.pop("serialNumber", None)
    metadata = document.get("metadata")
    if isinstance(metadata, dict):
        metadata.pop("timestamp", None)

    with open(path, "w", encoding="utf-8") as out:
        out.write(_dump_json(document, sort_keys=True) + "\n")


def _to_json(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.metadata.get("key", f.name): _to_json(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, (list, tuple)):
        return [_to_json(v) for v in value]
    return value


def _dump_json(value: Any, sort_keys: bool = False) -> str:
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, sort_keys=sort_keys)
    for char, escaped in (
        ("<", "\\u003c"),
        (">", "\\u003e"),
        ("&", "\\u0026"),
        ("\u2028", "\\u2028"),
        ("\u2029", "\\u2029"),
    ):
        text = text.replace(char, escaped)
    return text


def _fnv1a(data: bytes) -> int:
    h = _FNV_OFFSET
    for byte in data:
        h = ((h ^ byte) * _FNV_PRIME) & _MASK64
    return h


def _u64(*values: int) -> bytes:
    return b"".join(v.to_bytes(8, "little") for v in values)


def _hash_ordered(a: int, b: int) -> int:
    return _fnv1a(_u64(a, b))


def _hash_finish_unordered(a: int) -> int:
    return _fnv1a(_u64(a))


def _structure_hash(value: Any) -> int:
    """Hash a structure of strings, numbers, lists and dataclasses; lists are sets."""
    if isinstance(value, str):
        return _fnv1a(value.encode("utf-8"))
    if isinstance(value, bool):
        return _fnv1a(bytes([1 if value else 0]))
    if isinstance(value, int):
        return _fnv1a(value.to_bytes(8, "little", signed=True))
    if isinstance(value, (list, tuple)):
        h = 0
        for item in value:
            h ^= _structure_hash(item)
        return h
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        h = _structure_hash(type(value).__name__)
        for f in dataclasses.fields(value):
            key_hash = _structure_hash(f.metadata.get("key", f.name))
            value_hash = _structure_hash(getattr(value, f.name))
            h ^= _hash_ordered(key_hash, value_hash)
            h = _hash_finish_unordered(h)
        return h
    raise TypeError(f"unable to hash value of type {type(value).__name__}")