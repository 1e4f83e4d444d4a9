"""Tests for the dotnet build steps and archiving."""

import zipfile

import pytest

from targetflow.config import BuildParameters
from targetflow.errors import BuildError, ExternalCallError
from targetflow.git_facts.version import VersionInfo
from targetflow.step_workflows import dotnet

VERSION = VersionInfo(1, 2, 3, commits_since_tag=0, sha="abc1234")


class TestDotnetCommands:
    def test_compile_stamps_version(self, fake_run, tmp_path):
        run = fake_run()
        params = BuildParameters(root_dir=tmp_path, configuration="Release", solution="Articulate.sln")
        dotnet.compile_solution(params, VERSION, run=run)

        (cmd,) = run.calls
        assert cmd[:3] == ["dotnet", "build", "Articulate.sln"]
        assert "--configuration" in cmd and "Release" in cmd
        assert "-p:AssemblyVersion=1.2.3.0" in cmd
        assert "-p:InformationalVersion=1.2.3+0.Sha.abc1234" in cmd
        assert run.kwargs[0]["cwd"] == str(tmp_path)

    def test_publish_returns_publish_directory(self, fake_run, tmp_path):
        params = BuildParameters(root_dir=tmp_path)
        assert dotnet.publish(params, VERSION, run=fake_run()) == params.publish_directory

    def test_failure(self, fake_run, tmp_path):
        run = fake_run(lambda cmd: (1, "", "error CS1002: ; expected"))
        with pytest.raises(ExternalCallError) as exc:
            dotnet.restore(BuildParameters(root_dir=tmp_path), run=run)
        assert "CS1002" in str(exc.value)

    def test_missing_sdk(self, tmp_path):
        def run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        with pytest.raises(BuildError, match="dotnet is not available"):
            dotnet.restore(BuildParameters(root_dir=tmp_path), run=run)


class TestFiles:
    def test_zip_contains_directory_contents(self, tmp_path):
        source = tmp_path / "publish"
        (source / "wwwroot").mkdir(parents=True)
        (source / "Articulate.dll").write_bytes(b"dll")
        (source / "wwwroot" / "index.html").write_text("<html/>")

        archive = dotnet.create_zip_from_directory(source, tmp_path / "artifacts" / "articulate-1.2.3.zip")

        assert archive.is_file()
        with zipfile.ZipFile(archive) as zf:
            names = set(zf.namelist())
        assert "Articulate.dll" in names
        assert "wwwroot/index.html" in names

    def test_zip_of_missing_directory(self, tmp_path):
        with pytest.raises(BuildError):
            dotnet.create_zip_from_directory(tmp_path / "nope", tmp_path / "out.zip")

    def test_clean(self, tmp_path):
        params = BuildParameters(root_dir=tmp_path)
        (tmp_path / "src" / "Api" / "bin" / "Debug").mkdir(parents=True)
        (tmp_path / "src" / "Api" / "obj").mkdir(parents=True)
        (tmp_path / "src" / "Api" / "Program.cs").write_text("")
        (tmp_path / "artifacts").mkdir()
        (tmp_path / "artifacts" / "old.zip").write_bytes(b"")

        dotnet.clean(params)

        assert not (tmp_path / "src" / "Api" / "bin").exists()
        assert not (tmp_path / "src" / "Api" / "obj").exists()
        assert (tmp_path / "src" / "Api" / "Program.cs").exists()
        assert list((tmp_path / "artifacts").iterdir()) == []

    def test_package_zip_name(self):
        assert dotnet.package_zip_name("articulate", VERSION) == "articulate-1.2.3.zip"
