"""Tests for agentrelay.platform.wsl module."""

from unittest.mock import MagicMock, patch

from agentrelay.platform.process import ProcessError, ProcessResult
from agentrelay.platform.wsl import (
    _decode_wsl_listing,
    create_wsl_command,
    exec_in_wsl,
    find_cli_in_wsl,
    is_wsl_available,
    list_wsl_distributions,
    sort_distributions,
    windows_to_wsl_path,
    wsl_to_windows_path,
)


class TestPathConversion:
    """Tests for Windows <-> WSL path translation."""

    def test_drive_path(self):
        """Drive letters map to /mnt/<lowercase drive>."""
        assert windows_to_wsl_path("C:\\Users\\me\\project") == "/mnt/c/Users/me/project"

    def test_drive_root(self):
        """A bare drive root maps to the mount point."""
        assert windows_to_wsl_path("D:\\") == "/mnt/d/"

    def test_unc_path_unchanged(self):
        """UNC paths are passed through."""
        assert windows_to_wsl_path("\\\\server\\share") == "\\\\server\\share"

    def test_relative_path_separators(self):
        """Other paths only get their separators converted."""
        assert windows_to_wsl_path("src\\app") == "src/app"

    def test_back_to_windows(self):
        """/mnt/<drive> paths map back to drive letters."""
        assert wsl_to_windows_path("/mnt/c/Users/me") == "C:\\Users\\me"

    def test_non_mount_path_unchanged(self):
        """Linux paths outside /mnt are returned unchanged."""
        assert wsl_to_windows_path("/home/me") == "/home/me"


class TestDistributions:
    """Tests for distribution listing and ordering."""

    def test_priority_order(self):
        """Known distributions come first, unknown ones keep their order at the end."""
        result = sort_distributions(["Alpine", "Debian", "kali-linux", "Ubuntu-22.04"])
        assert result == ["Ubuntu-22.04", "Debian", "Alpine", "kali-linux"]

    def test_decode_utf16_listing(self):
        """UTF-16LE output from wsl.exe is decoded."""
        raw = "Ubuntu\r\nDebian\r\n".encode("utf-16le")
        assert _decode_wsl_listing(raw).splitlines() == ["Ubuntu", "Debian"]

    def test_decode_utf8_listing(self):
        """UTF-8 output (WSL_UTF8=1) is decoded as is."""
        assert _decode_wsl_listing(b"Ubuntu\n") == "Ubuntu\n"

    def test_docker_desktop_is_excluded(self):
        """docker-desktop distributions are filtered out."""
        completed = MagicMock(returncode=0, stdout="Ubuntu\r\ndocker-desktop\r\n\r\n".encode("utf-16le"))
        with patch("agentrelay.platform.wsl.subprocess.run", return_value=completed):
            assert list_wsl_distributions() == ["Ubuntu"]

    def test_listing_failure_returns_empty(self):
        """A missing wsl.exe yields no distributions."""
        with patch("agentrelay.platform.wsl.subprocess.run", side_effect=FileNotFoundError("wsl.exe")):
            assert list_wsl_distributions() == []


class TestExecInWsl:
    """Tests for exec_in_wsl and availability checks."""

    def test_returns_stripped_stdout(self):
        """Successful commands return their stripped stdout."""
        result = ProcessResult(stdout="/usr/bin/cursor-agent\n", stderr="", exit_code=0)
        with patch("agentrelay.platform.wsl.run_process", return_value=result) as mock_run:
            assert exec_in_wsl(["which", "cursor-agent"], distribution="Ubuntu") == "/usr/bin/cursor-agent"
        options = mock_run.call_args[0][0]
        assert options.argv == ["wsl.exe", "-d", "Ubuntu", "which", "cursor-agent"]

    def test_non_zero_exit_returns_none(self):
        """A failing command returns None."""
        result = ProcessResult(stdout="", stderr="", exit_code=1)
        with patch("agentrelay.platform.wsl.run_process", return_value=result):
            assert exec_in_wsl(["which", "x"]) is None

    def test_probe_error_returns_none(self):
        """Spawn failures and timeouts return None instead of raising."""
        with patch("agentrelay.platform.wsl.run_process", side_effect=ProcessError("timed out", timed_out=True)):
            assert exec_in_wsl(["which", "x"]) is None

    def test_unavailable_off_windows(self):
        """WSL is never available on non-Windows hosts."""
        with patch("agentrelay.platform.wsl.sys.platform", "linux"):
            assert is_wsl_available() is False


class TestFindCliInWsl:
    """Tests for find_cli_in_wsl."""

    def test_not_available(self):
        """Without WSL nothing is searched."""
        with patch("agentrelay.platform.wsl.is_wsl_available", return_value=False):
            assert find_cli_in_wsl("cursor-agent") is None

    def test_found_via_which_in_priority_distribution(self):
        """Distributions are searched in priority order."""

        def fake_exec(args, *, distribution=None, timeout=10.0):
            if args[0] == "which" and distribution == "Ubuntu":
                return "/home/me/.local/bin/cursor-agent"
            return None

        with (
            patch("agentrelay.platform.wsl.is_wsl_available", return_value=True),
            patch("agentrelay.platform.wsl.list_wsl_distributions", return_value=["Alpine", "Ubuntu"]),
            patch("agentrelay.platform.wsl.exec_in_wsl", side_effect=fake_exec),
        ):
            result = find_cli_in_wsl("cursor-agent")

        assert result is not None
        assert result.wsl_path == "/home/me/.local/bin/cursor-agent"
        assert result.distribution == "Ubuntu"

    def test_common_directory_probe(self):
        """When which fails, common install directories are probed."""

        def fake_exec(args, *, distribution=None, timeout=10.0):
            if args[0] == "sh" and "/usr/local/bin/cursor-agent" in args[2]:
                return "/usr/local/bin/cursor-agent"
            return None

        with (
            patch("agentrelay.platform.wsl.is_wsl_available", return_value=True),
            patch("agentrelay.platform.wsl.exec_in_wsl", side_effect=fake_exec),
        ):
            result = find_cli_in_wsl("cursor-agent", distribution="Debian")

        assert result.wsl_path == "/usr/local/bin/cursor-agent"
        assert result.distribution == "Debian"

    def test_timeout_reaches_every_probe(self):
        """The caller's timeout applies to the availability and listing probes too."""
        with (
            patch("agentrelay.platform.wsl.is_wsl_available", return_value=True) as mock_available,
            patch("agentrelay.platform.wsl.list_wsl_distributions", return_value=[]) as mock_list,
            patch("agentrelay.platform.wsl.exec_in_wsl", return_value=None) as mock_exec,
        ):
            assert find_cli_in_wsl("cursor-agent", timeout=2.5) is None

        mock_available.assert_called_once_with(timeout=2.5)
        mock_list.assert_called_once_with(timeout=2.5)
        assert {call.kwargs["timeout"] for call in mock_exec.call_args_list} == {2.5}


class TestCreateWslCommand:
    """Tests for create_wsl_command."""

    def test_with_distribution_and_cwd(self, monkeypatch):
        """The distribution and translated cwd precede the CLI path."""
        monkeypatch.setenv("SystemRoot", "C:\\Windows")
        command, args = create_wsl_command(
            "/usr/bin/cursor-agent",
            ["-p", "-"],
            distribution="Ubuntu",
            cwd="C:\\work\\repo",
        )
        assert command == "C:\\Windows\\System32\\wsl.exe"
        assert args == ["-d", "Ubuntu", "--cd", "/mnt/c/work/repo", "/usr/bin/cursor-agent", "-p", "-"]

    def test_default_distribution(self):
        """Without a distribution or cwd only the CLI and its args are passed."""
        _, args = create_wsl_command("/usr/bin/cursor-agent", ["-p"])
        assert args == ["/usr/bin/cursor-agent", "-p"]
