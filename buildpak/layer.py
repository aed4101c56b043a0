"""Layer contribution with consistent logging and reuse of cached layers."""

from __future__ import annotations

import copy
import os
import shutil
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, TextIO

from buildpak.internal.toml_support import marshal
from buildpak.sbom import SBOMFormat, SyftArtifact, SyftLocation, new_syft_dependency
from buildpak.sherpa.files import copy_file, dir_exists, file_exists

_BLUE = "\x1b[34m"
_GREEN = "\x1b[32m"
_RED = "\x1b[31m"
_YELLOW = "\x1b[33m"
_DIM = "\x1b[2m"
_RESET = "\x1b[0m"


def _colour(code: str, text: str) -> str:
    return f"{code}{text}{_RESET}"


def _header(output: TextIO | None, message: str) -> None:
    if output is not None:
        output.write(f"  {message}\n")


def _body(output: TextIO | None, message: str) -> None:
    if output is not None:
        output.write(f"{_DIM}    {message}{_RESET}\n")


@dataclass(frozen=True)
class LayerTypes:
    """Which phases a layer is available to."""

    build: bool = False
    cache: bool = False
    launch: bool = False


@dataclass
class Layer:
    """A layer directory and its metadata.

    ``name`` defaults to the base name of ``path``; ``exec_path`` to ``<path>/exec.d``.
    """

    path: str
    name: str = ""
    layer_types: LayerTypes = field(default_factory=LayerTypes)
    metadata: dict[str, Any] = field(default_factory=dict)
    exec_path: str | None = None

    def __post_init__(self) -> None:
        self.path = os.fspath(self.path)
        if not self.name:
            self.name = os.path.basename(self.path)
        if self.exec_path is None:
            self.exec_path = os.path.join(self.path, "exec.d")

    def sbom_path(self, format: SBOMFormat) -> str:
        """Return the path of this layer's SBOM file in ``format``."""
        return os.path.join(os.path.dirname(self.path), f"{self.name}.sbom.{format.value}")

    def exec_file_path(self, name: str) -> str:
        """Return the path of the exec.d executable called ``name``."""
        return os.path.join(self.exec_path, name)


@dataclass
class BuildpackLicense:
    """A licence a buildpack is distributed under."""

    type: str = ""
    uri: str = ""


@dataclass
class BuildpackInfo:
    """Identifying information about a buildpack."""

    id: str = ""
    name: str = ""
    version: str = ""
    homepage: str = ""
    clear_environment: bool = field(default=False, metadata={"toml": "clear-env"})
    description: str = ""
    licenses: list[BuildpackLicense] = field(
        default_factory=list, metadata={"omitempty": True}
    )


@dataclass
class Buildpack:
    """A buildpack: its API version, information and installation path."""

    api: str = ""
    info: BuildpackInfo = field(default_factory=BuildpackInfo)
    path: str = ""


@dataclass
class BOMEntry:
    """A bill-of-materials entry describing layer contents."""

    name: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    launch: bool = False
    build: bool = False


def _truncate_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.replace(microsecond=0).astimezone(timezone.utc)


def _normalise_deprecation_date(
    metadata: Mapping[str, Any], parse_strings: bool
) -> dict[str, Any]:
    result = dict(metadata)
    dependency = result.get("dependency")
    if not isinstance(dependency, Mapping) or "deprecation_date" not in dependency:
        return result

    value = dependency["deprecation_date"]
    if isinstance(value, str) and parse_strings:
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            raise ValueError(f"unable to parse deprecation_date {value}") from None
    if isinstance(value, datetime):
        updated = dict(dependency)
        updated["deprecation_date"] = _truncate_utc(value)
        result["dependency"] = updated
    return result


@dataclass
class LayerContributor:
    """Contributes a layer, reusing it when its metadata matches ``expected_metadata``."""

    name: str
    expected_metadata: Any = None
    expected_types: LayerTypes = field(default_factory=LayerTypes)
    output: TextIO | None = None

    def contribute(self, layer: Layer, func: Callable[[], Layer]) -> Layer:
        """Reuse ``layer`` if restored and unchanged, otherwise reset it and call ``func``."""
        restored = self._is_layer_restored(layer)
        expected, cached = self._check_metadata(layer)

        name = _colour(_BLUE, self.name)
        if cached and restored:
            _header(self.output, f"{name}: {_colour(_GREEN, 'Reusing')} cached layer")
            return replace(layer, layer_types=self.expected_types)

        if not restored:
            _header(self.output, f"{name}: {_colour(_RED, 'Reloading')} cached layer")
        else:
            _header(self.output, f"{name}: {_colour(_YELLOW, 'Contributing')} to layer")

        try:
            self._reset(layer)
        except OSError as err:
            raise OSError(f"unable to reset\n{err}") from err

        result = func()
        return replace(result, layer_types=self.expected_types, metadata=expected)

    def equals(self, expected: Mapping[str, Any], actual: Mapping[str, Any]) -> bool:
        """Compare metadata, normalising ``dependency.deprecation_date`` to whole UTC seconds."""
        return _normalise_deprecation_date(expected, False) == _normalise_deprecation_date(
            actual, True
        )

    def _check_metadata(self, layer: Layer) -> tuple[dict[str, Any], bool]:
        source = {} if self.expected_metadata is None else self.expected_metadata
        try:
            expected = tomllib.loads(marshal(source))
        except (TypeError, ValueError) as err:
            raise ValueError(f"unable to check metadata\nunable to encode metadata\n{err}") from err

        expected = _normalise_deprecation_date(expected, False)
        try:
            match = self.equals(expected, copy.deepcopy(layer.metadata or {}))
        except ValueError as err:
            raise ValueError(f"unable to check metadata\nunable to compare metadata\n{err}") from err
        return expected, match

    def _is_layer_restored(self, layer: Layer) -> bool:
        toml_exists = file_exists(f"{layer.path}.toml")
        layer_dir_exists = dir_exists(layer.path)
        empty = True
        if layer_dir_exists:
            with os.scandir(layer.path) as entries:
                empty = next(entries, None) is None

        needs_contents = self.expected_types.cache or self.expected_types.build
        return not (toml_exists and (not layer_dir_exists or empty) and needs_contents)

    @staticmethod
    def _reset(layer: Layer) -> None:
        if os.path.lexists(layer.path):
            if os.path.isdir(layer.path) and not os.path.islink(layer.path):
                shutil.rmtree(layer.path)
            else:
                os.unlink(layer.path)
        os.makedirs(layer.path, mode=0o755, exist_ok=True)


@dataclass
class HelperLayerContributor:
    """Contributes a launch layer holding a helper application linked under several names."""

    path: str
    buildpack_info: BuildpackInfo = field(default_factory=BuildpackInfo)
    names: list[str] = field(default_factory=list)
    output: TextIO | None = None

    def name(self) -> str:
        """Return the conventional layer name for this contributor."""
        return os.path.basename(self.path)

    def contribute(self, layer: Layer) -> Layer:
        """Copy the helper into ``layer`` and link it into exec.d under each name."""
        expected = {"buildpackInfo": self.buildpack_info, "helperNames": list(self.names)}
        contributor = LayerContributor(
            "Launch Helper", expected, LayerTypes(launch=True), self.output
        )

        def populate() -> Layer:
            out = os.path.join(layer.path, "helper")
            try:
                with open(self.path, "rb") as source:
                    copy_file(source, out)
            except OSError as err:
                raise OSError(f"unable to copy {self.path} to {out}") from err

            for helper_name in self.names:
                link = layer.exec_file_path(helper_name)
                _body(self.output, f"Creating {link}")
                os.makedirs(os.path.dirname(link), mode=0o755, exist_ok=True)
                os.symlink(out, link)

            artifact = self.as_syft_artifact()
            new_syft_dependency(layer.path, [artifact]).write_to(
                layer.sbom_path(SBOMFormat.SYFT_JSON)
            )
            return layer

        return contributor.contribute(layer, populate)

    def as_syft_artifact(self) -> SyftArtifact:
        """Describe the helper as a Syft artifact with a content-derived ID."""
        info = self.buildpack_info
        artifact = SyftArtifact(
            name="helper",
            version=info.version,
            type="UnknownPackage",
            found_by="libpak",
            licenses=[license.type for license in info.licenses],
            locations=[SyftLocation(path=n) for n in self.names],
            cpes=[f"cpe:2.3:a:{info.id}:{n}:{info.version}:*:*:*:*:*:*:*" for n in self.names],
            purl=f"pkg:generic/{info.id}@{info.version}",
        )
        artifact.id = artifact.hash()
        return artifact


def new_helper_layer_contributor(buildpack: Buildpack, *names: str) -> HelperLayerContributor:
    """Create a contributor for the helper shipped in ``<buildpack>/bin/helper``."""
    return HelperLayerContributor(
        path=os.path.join(buildpack.path, "bin", "helper"),
        buildpack_info=buildpack.info,
        names=list(names),
    )


def new_helper_layer(
    buildpack: Buildpack, *names: str
) -> tuple[HelperLayerContributor, BOMEntry]:
    """Create a helper contributor and a BOM entry describing its layer."""
    contributor = new_helper_layer_contributor(buildpack, *names)
    entry = BOMEntry(
        name="helper",
        metadata={
            "layer": contributor.name(),
            "names": list(names),
            "version": buildpack.info.version,
        },
        launch=True,
    )
    return contributor, entry