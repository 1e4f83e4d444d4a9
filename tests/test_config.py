"""Tests for build parameter loading."""

import dataclasses
from pathlib import Path

import pytest

from targetflow.config import BuildParameters, load_parameters, normalize_key


class TestNormalizeKey:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("CfUsername", "cf_username"),
            ("cf-skip-login", "cf_skip_login"),
            ("CF_ORG", "cf_org"),
            ("TARGETFLOW_APPS_COUNT", "apps_count"),
            ("GitHubToken", "github_token"),
            ("CfApi", "cf_api_endpoint"),
        ],
    )
    def test_spellings(self, raw, expected):
        assert normalize_key(raw) == expected


class TestLoadParameters:
    def test_defaults(self):
        params = load_parameters(environ={})
        assert params.configuration == "Debug"
        assert params.apps_count == 3
        assert params.cf_skip_login is False
        assert params.cf_service_instance == "eureka"
        assert params.artifacts_directory == Path(".") / "artifacts"

    def test_server_build_defaults_to_release(self):
        assert load_parameters(environ={"TF_BUILD": "True"}).configuration == "Release"

    def test_explicit_configuration_wins_on_server(self):
        params = load_parameters({"configuration": "Debug"}, environ={"CI": "true"})
        assert params.configuration == "Debug"

    def test_prefixed_environment(self):
        params = load_parameters(environ={"TARGETFLOW_APPS_COUNT": "5", "TARGETFLOW_CF_SKIP_LOGIN": "yes"})
        assert params.apps_count == 5
        assert params.cf_skip_login is True

    def test_bare_credential_environment(self):
        params = load_parameters(
            environ={"CF_USERNAME": "me", "CF_PASSWORD": "pw", "GITHUB_TOKEN": "t", "APPS_COUNT": "9"}
        )
        assert params.cf_username == "me"
        assert params.cf_password == "pw"
        assert params.github_token == "t"
        # only credentials are read without the prefix
        assert params.apps_count == 3

    def test_override_beats_environment(self):
        params = load_parameters({"AppsCount": "7"}, environ={"TARGETFLOW_APPS_COUNT": "5"})
        assert params.apps_count == 7

    def test_none_override_is_ignored(self):
        params = load_parameters({"cf_org": None}, environ={"CF_ORG": "acme"})
        assert params.cf_org == "acme"

    def test_unknown_parameter(self):
        with pytest.raises(ValueError, match="Unknown parameter"):
            load_parameters({"Bogus": "1"}, environ={})

    def test_bad_number(self):
        with pytest.raises(ValueError, match="expects int"):
            load_parameters({"apps_count": "many"}, environ={})

    def test_service_plan_mapping(self):
        params = load_parameters(
            {"cf_service_plans": "run.example.com=free, api.other=gold"}, environ={}
        )
        assert params.cf_service_plans == (("run.example.com", "free"), ("api.other", "gold"))

    def test_bad_service_plan_mapping(self):
        with pytest.raises(ValueError):
            load_parameters({"cf_service_plans": "nonsense"}, environ={})

    def test_staging_directory_for_artifacts(self, tmp_path):
        params = load_parameters(environ={"BUILD_ARTIFACTSTAGINGDIRECTORY": str(tmp_path)})
        assert params.artifacts_directory == tmp_path

    def test_root_dir_drives_paths(self, tmp_path):
        params = load_parameters({"root_dir": str(tmp_path), "configuration": "Release"}, environ={})
        assert params.source_directory == tmp_path / "src"
        assert params.artifacts_directory == tmp_path / "artifacts"
        assert params.publish_directory == tmp_path / "src" / "bin" / "Release" / "netcoreapp2.2" / "publish"


class TestBuildParameters:
    def test_is_frozen(self):
        params = BuildParameters()
        with pytest.raises(dataclasses.FrozenInstanceError):
            params.cf_org = "other"

    def test_is_set(self):
        params = BuildParameters(cf_org="acme", cf_space="")
        assert params.is_set("cf_org")
        assert not params.is_set("cf_space")
        assert not params.is_set("cf_username")
