import io
import json
import os
from datetime import datetime, timezone

import pytest

from buildpak.layer import (
    BOMEntry,
    Buildpack,
    BuildpackInfo,
    BuildpackLicense,
    HelperLayerContributor,
    Layer,
    LayerContributor,
    LayerTypes,
    new_helper_layer,
    new_helper_layer_contributor,
)
from buildpak.sbom import SBOMFormat

EXPECTED = {
    "alpha": "test-alpha",
    "bravo": {"bravo-1": "test-bravo-1", "bravo-2": "test-bravo-2"},
}


@pytest.fixture
def layer(tmp_path):
    path = str(tmp_path / "test-layer")
    return Layer(path=path, name="test-layer", exec_path=path)


class _Recorder:
    def __init__(self, layer, error=None):
        self.layer = layer
        self.called = False
        self.error = error

    def __call__(self):
        self.called = True
        if self.error is not None:
            raise self.error
        return self.layer


def _contributor(**types):
    return LayerContributor("test", dict(EXPECTED), LayerTypes(**types))


def test_layer_paths(tmp_path):
    layer = Layer(path=str(tmp_path / "alpha"))
    assert layer.name == "alpha"
    assert layer.exec_file_path("x") == str(tmp_path / "alpha" / "exec.d" / "x")
    assert layer.sbom_path(SBOMFormat.SYFT_JSON) == str(tmp_path / "alpha.sbom.syft.json")


def test_calls_function_with_no_existing_metadata(layer):
    rec = _Recorder(layer)
    _contributor().contribute(layer, rec)
    assert rec.called is True


def test_calls_function_with_non_matching_metadata(layer):
    layer.metadata["alpha"] = "test-alpha"
    rec = _Recorder(layer)
    _contributor().contribute(layer, rec)
    assert rec.called is True


@pytest.mark.parametrize("types", [{"cache": True}, {"build": True}])
def test_reloads_when_layer_directory_missing(layer, types):
    layer.metadata = dict(EXPECTED)
    with open(f"{layer.path}.toml", "w"):
        pass
    rec = _Recorder(layer)
    _contributor(**types).contribute(layer, rec)
    assert rec.called is True


def test_reloads_when_layer_directory_empty(layer):
    layer.metadata = dict(EXPECTED)
    with open(f"{layer.path}.toml", "w"):
        pass
    os.makedirs(layer.path)
    rec = _Recorder(layer)
    _contributor(build=True).contribute(layer, rec)
    assert rec.called is True


def test_does_not_reload_when_layer_directory_has_file(layer):
    layer.metadata = dict(EXPECTED)
    with open(f"{layer.path}.toml", "w"):
        pass
    os.makedirs(layer.path)
    with open(os.path.join(layer.path, "foo"), "w"):
        pass
    rec = _Recorder(layer)
    _contributor(build=True).contribute(layer, rec)
    assert rec.called is False


def test_does_not_reload_when_layer_toml_missing(layer):
    layer.metadata = dict(EXPECTED)
    os.makedirs(layer.path)
    rec = _Recorder(layer)
    _contributor().contribute(layer, rec)
    assert rec.called is False


def test_does_not_call_function_with_matching_metadata(layer):
    layer.metadata = dict(EXPECTED)
    output = io.StringIO()
    contributor = _contributor()
    contributor.output = output
    rec = _Recorder(layer)
    contributor.contribute(layer, rec)
    assert rec.called is False
    assert "Reusing" in output.getvalue()


def test_returns_function_error(layer):
    rec = _Recorder(layer, RuntimeError("test-error"))
    with pytest.raises(RuntimeError, match="^test-error$"):
        _contributor().contribute(layer, rec)


def test_adds_expected_metadata_to_layer(layer):
    result = _contributor().contribute(layer, _Recorder(layer))
    assert result.metadata == EXPECTED


@pytest.mark.parametrize("flag", ["build", "cache", "launch"])
def test_sets_layer_flag(layer, flag):
    result = _contributor(**{flag: True}).contribute(layer, _Recorder(layer))
    assert getattr(result.layer_types, flag) is True


def test_sets_layer_flags_regardless_of_caching(layer):
    layer.metadata = dict(EXPECTED)
    rec = _Recorder(layer)
    result = _contributor(launch=True, cache=True, build=True).contribute(layer, rec)
    assert rec.called is False
    assert result.layer_types == LayerTypes(build=True, cache=True, launch=True)


def test_reset_clears_existing_layer_contents(layer):
    os.makedirs(layer.path)
    stale = os.path.join(layer.path, "stale")
    with open(stale, "w"):
        pass
    _contributor().contribute(layer, _Recorder(layer))
    assert not os.path.exists(stale)
    assert os.path.isdir(layer.path)


def _dependency(deprecation_date):
    return {
        "id": "test-id",
        "name": "test-name",
        "version": "1.1.1",
        "stacks": ["test-stack"],
        "deprecation_date": deprecation_date,
    }


def test_matching_deprecation_date_in_different_format_is_reused(layer):
    date = datetime(2021, 4, 1, tzinfo=timezone.utc)
    contributor = LayerContributor("dep", {"dependency": _dependency(date)})
    layer.metadata = {"dependency": _dependency("2021-04-01T00:00:00Z")}
    rec = _Recorder(layer)
    contributor.contribute(layer, rec)
    assert rec.called is False


def test_equals_truncates_and_converts_to_utc():
    contributor = LayerContributor("dep")
    expected = {"dependency": _dependency(datetime(2021, 4, 1, 0, 0, 0, 500000, tzinfo=timezone.utc))}
    actual = {"dependency": _dependency("2021-04-01T02:00:00+02:00")}
    assert contributor.equals(expected, actual) is True


def test_equals_zero_date():
    contributor = LayerContributor("dep")
    expected = {"dependency": _dependency(datetime(1, 1, 1, tzinfo=timezone.utc))}
    actual = {"dependency": _dependency("0001-01-01T00:00:00Z")}
    assert contributor.equals(expected, actual) is True


def test_equals_detects_different_dates():
    contributor = LayerContributor("dep")
    expected = {"dependency": _dependency(datetime(2021, 4, 1, tzinfo=timezone.utc))}
    actual = {"dependency": _dependency("2021-04-02T00:00:00Z")}
    assert contributor.equals(expected, actual) is False


def test_equals_rejects_unparseable_date():
    contributor = LayerContributor("dep")
    expected = {"dependency": _dependency(datetime(2021, 4, 1, tzinfo=timezone.utc))}
    actual = {"dependency": _dependency("not-a-date")}
    with pytest.raises(ValueError, match="unable to parse deprecation_date not-a-date"):
        contributor.equals(expected, actual)


@pytest.mark.parametrize("api", ["0.6", "0.7"])
def test_new_helper_layer_returns_bom_entry(api):
    buildpack = Buildpack(api=api, info=BuildpackInfo(version="test-version"))
    _, entry = new_helper_layer(buildpack, "test-name-1", "test-name-2")
    assert entry == BOMEntry(
        name="helper",
        metadata={
            "layer": "helper",
            "names": ["test-name-1", "test-name-2"],
            "version": "test-version",
        },
        launch=True,
        build=False,
    )


def test_new_helper_layer_contributor_path(tmp_path):
    buildpack = Buildpack(info=BuildpackInfo(id="test-id"), path=str(tmp_path))
    hlc = new_helper_layer_contributor(buildpack, "a", "b")
    assert hlc.path == str(tmp_path / "bin" / "helper")
    assert hlc.names == ["a", "b"]
    assert hlc.name() == "helper"


@pytest.fixture
def info():
    return BuildpackInfo(
        id="test-id", name="test-name", version="test-version", homepage="test-homepage"
    )


@pytest.fixture
def hlc(tmp_path, info):
    bin_dir = tmp_path / "buildpack" / "bin"
    bin_dir.mkdir(parents=True)
    helper = bin_dir / "helper"
    helper.write_bytes(b"")
    helper.chmod(0o755)
    return HelperLayerContributor(
        path=str(helper), buildpack_info=info, names=["test-name-1", "test-name-2"]
    )


def _info_metadata(info):
    return {
        "id": info.id,
        "name": info.name,
        "version": info.version,
        "homepage": info.homepage,
        "clear-env": info.clear_environment,
        "description": "",
    }


def test_helper_contributes_with_no_existing_metadata(layer, hlc):
    result = hlc.contribute(layer)
    assert os.path.exists(layer.exec_file_path("test-name-1"))
    assert result.layer_types == LayerTypes(launch=True, cache=False, build=False)
    assert result.metadata["helperNames"] == ["test-name-1", "test-name-2"]


def test_helper_contributes_with_non_matching_metadata(layer, hlc):
    layer.metadata["alpha"] = "other-alpha"
    hlc.contribute(layer)
    for name in ("test-name-1", "test-name-2"):
        link = layer.exec_file_path(name)
        assert os.path.exists(link)
        assert os.readlink(link) == os.path.join(layer.path, "helper")


def test_helper_not_contributed_with_matching_metadata(layer, hlc, info):
    layer.metadata["buildpackInfo"] = _info_metadata(info)
    layer.metadata["helperNames"] = list(hlc.names)
    result = hlc.contribute(layer)
    assert not os.path.exists(layer.exec_file_path("test-name-1"))
    assert not os.path.exists(layer.exec_file_path("test-name-2"))
    assert result.metadata["helperNames"] == ["test-name-1", "test-name-2"]
    assert result.layer_types.launch is True


def test_helper_adds_expected_metadata(layer, hlc, info):
    result = hlc.contribute(layer)
    assert result.metadata == {
        "buildpackInfo": _info_metadata(info),
        "helperNames": ["test-name-1", "test-name-2"],
    }


def test_helper_sets_launch_flag_only(layer, hlc, info):
    layer.metadata["buildpackInfo"] = _info_metadata(info)
    layer.metadata["helperNames"] = list(hlc.names)
    result = hlc.contribute(layer)
    assert not os.path.exists(layer.exec_file_path("test-name-1"))
    assert result.layer_types == LayerTypes(launch=True, cache=False, build=False)


def test_helper_writes_syft_sbom(layer, hlc):
    hlc.contribute(layer)
    assert os.path.exists(layer.exec_file_path("test-name-2"))
    output_file = layer.sbom_path(SBOMFormat.SYFT_JSON)
    assert os.path.isfile(output_file)
    with open(output_file, encoding="utf-8") as f:
        data = f.read()
    assert '"Artifacts":[' in data
    assert '"FoundBy":"libpak",' in data
    assert '"PURL":"pkg:generic/test-id@test-version"' in data
    assert (
        '"CPEs":["cpe:2.3:a:test-id:test-name-1:test-version:*:*:*:*:*:*:*",'
        '"cpe:2.3:a:test-id:test-name-2:test-version:*:*:*:*:*:*:*"]'
    ) in data
    assert '"Schema":{' in data
    assert '"Descriptor":{' in data
    assert '"Source":{' in data
    assert json.loads(data)["Source"]["Target"] == layer.path


def test_helper_syft_artifact(hlc):
    hlc.buildpack_info.licenses = [BuildpackLicense(type="Apache-2.0", uri="test-uri")]
    artifact = hlc.as_syft_artifact()
    assert artifact.name == "helper"
    assert artifact.type == "UnknownPackage"
    assert artifact.licenses == ["Apache-2.0"]
    assert [loc.path for loc in artifact.locations] == ["test-name-1", "test-name-2"]
    assert artifact.purl == "pkg:generic/test-id@test-version"
    assert len(artifact.id) > 0
    assert artifact.id == hlc.as_syft_artifact().id
    hlc.names = ["other"]
    assert hlc.as_syft_artifact().id != artifact.id