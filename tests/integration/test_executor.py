"""
Integration tests for the diskpart executor.

diskpart itself is never started: ``subprocess.run`` is patched and the
tests check everything around it (privilege gate, script file lifecycle,
timeouts, classification and parsing).
"""

import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from diskpartctl.core.config import ExecutorConfig
from diskpartctl.core.errors import ErrorCode
from diskpartctl.core.logging import DEFAULT_AUDIT_ENTRIES, AuditLog
from diskpartctl.core.models import ProcessOutput
from diskpartctl.diskpart.executor import SCRIPT_ENCODING, DiskpartExecutor
from diskpartctl.diskpart.parsers import parse_list_disk

RUN = "diskpartctl.diskpart.executor.subprocess.run"


def completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(["diskpart.exe"], returncode, stdout, stderr)


@pytest.mark.integration
class TestExecute:
    """Tests for DiskpartExecutor.execute."""

    def test_success(self, executor: DiskpartExecutor, script_dir: Path) -> None:
        seen: dict = {}

        def fake_run(command: list[str], **kwargs: object) -> subprocess.CompletedProcess:
            script_path = Path(command[2])
            seen["command"] = command
            seen["script"] = script_path.read_text(encoding="utf-8")
            seen["timeout"] = kwargs["timeout"]
            return completed("DiskPart successfully cleaned the disk.")

        with patch(RUN, side_effect=fake_run):
            result = executor.execute("select disk 1\nclean")

        assert result.success is True
        assert result.message == "Command executed successfully"
        assert isinstance(result.data, ProcessOutput)
        assert result.details == "DiskPart successfully cleaned the disk."
        assert seen["command"][:2] == ["diskpart.exe", "/s"]
        assert seen["script"] == "select disk 1\nclean"
        assert seen["timeout"] == 30.0
        assert list(script_dir.iterdir()) == []

    def test_script_file_name(self, executor: DiskpartExecutor, script_dir: Path) -> None:
        with patch(RUN, return_value=completed("ok")) as mock_run:
            executor.execute("list disk")

        script_path = Path(mock_run.call_args.args[0][2])
        assert script_path.parent == script_dir
        assert script_path.name.startswith("diskpart_")
        assert script_path.suffix == ".txt"

    def test_without_privileges(self, sample_config, script_dir: Path) -> None:
        executor = DiskpartExecutor(sample_config.executor, elevation_probe=lambda: False)

        with patch(RUN) as mock_run:
            result = executor.execute("list disk")

        mock_run.assert_not_called()
        assert result.success is False
        assert result.error_code == "PRIVILEGE_ERROR"
        assert list(script_dir.iterdir()) == []

    def test_timeout(self, executor: DiskpartExecutor, script_dir: Path) -> None:
        with patch(RUN, side_effect=subprocess.TimeoutExpired(["diskpart.exe"], 30)):
            result = executor.execute("list disk")

        assert result.success is False
        assert result.error_code == "COMMAND_TIMEOUT"
        assert result.message == "Command timed out after 30s"
        assert list(script_dir.iterdir()) == []

    def test_custom_timeout(self, executor: DiskpartExecutor) -> None:
        with patch(RUN, return_value=completed("ok")) as mock_run:
            executor.execute("list disk", timeout=5)
        assert mock_run.call_args.kwargs["timeout"] == 5

    def test_destructive_timeout(self, executor: DiskpartExecutor) -> None:
        with patch(RUN, return_value=completed("DiskPart successfully cleaned the disk.")) as mock_run:
            executor.execute_destructive("select disk 1\nclean")
        assert mock_run.call_args.kwargs["timeout"] == 60.0

    def test_access_denied_output(self, executor: DiskpartExecutor) -> None:
        output = "\nAccess is denied.\n"
        with patch(RUN, return_value=completed(output, returncode=5)):
            result = executor.execute("select disk 0\nclean")

        assert result.success is False
        assert result.error_code == "ACCESS_DENIED"
        assert result.details == output

    def test_disk_not_valid(self, executor: DiskpartExecutor) -> None:
        output = "\nThe disk you specified is not valid.\n\nPlease select a valid disk.\n"
        with patch(RUN, return_value=completed(output)):
            result = executor.execute("select disk 9")

        assert result.has_code(ErrorCode.DISK_NOT_FOUND)
        assert result.message == "The disk you specified is not valid."

    def test_failure_marker_with_zero_exit(self, executor: DiskpartExecutor) -> None:
        output = "Virtual Disk Service error:\nThe volume size is too big.\n"
        with patch(RUN, return_value=completed(output)):
            result = executor.execute("select disk 1\ncreate partition primary size=999999999")

        assert result.error_code == "COMMAND_EXECUTION_ERROR"
        assert result.message == "Virtual Disk Service error:"
        assert isinstance(result.data, ProcessOutput)

    def test_nonzero_exit_without_marker(self, executor: DiskpartExecutor) -> None:
        with patch(RUN, return_value=completed(returncode=2)):
            result = executor.execute("list disk")

        assert result.error_code == "COMMAND_EXECUTION_ERROR"
        assert result.message == "diskpart exited with code 2"

    def test_empty_output_is_failure(self, executor: DiskpartExecutor) -> None:
        with patch(RUN, return_value=completed()):
            result = executor.execute("list disk")

        assert result.success is False
        assert result.message == "Command failed"

    def test_stderr_is_classified(self, executor: DiskpartExecutor) -> None:
        with patch(RUN, return_value=completed("Disk 1 is now the selected disk.", "Access is denied.")):
            result = executor.execute("select disk 1\nclean")
        assert result.error_code == "ACCESS_DENIED"

    def test_tool_missing(self, executor: DiskpartExecutor, script_dir: Path) -> None:
        with patch(RUN, side_effect=FileNotFoundError("diskpart.exe not found")):
            result = executor.execute("list disk")

        assert result.error_code == "COMMAND_EXECUTION_ERROR"
        assert result.details == "diskpart.exe not found"
        assert list(script_dir.iterdir()) == []

    def test_spawn_access_denied(self, executor: DiskpartExecutor) -> None:
        with patch(RUN, side_effect=PermissionError("[WinError 5] Access is denied")):
            result = executor.execute("list disk")
        assert result.error_code == "ACCESS_DENIED"

    def test_script_file_not_writable(self, temp_dir: Path) -> None:
        config = ExecutorConfig(temp_directory=temp_dir / "missing")
        executor = DiskpartExecutor(config, elevation_probe=lambda: True)

        with patch(RUN) as mock_run:
            result = executor.execute("list disk")

        mock_run.assert_not_called()
        assert result.error_code == "COMMAND_EXECUTION_ERROR"
        assert result.message == "Failed to create temporary script file"

    def test_unencodable_script_leaves_no_file(
        self, executor: DiskpartExecutor, script_dir: Path
    ) -> None:
        script = 'select disk 1\nselect partition 1\nformat fs=NTFS label="bad\udcff" quick'

        with patch(RUN) as mock_run:
            result = executor.execute(script)

        mock_run.assert_not_called()
        assert result.success is False
        assert result.error_code == "COMMAND_EXECUTION_ERROR"
        assert result.message == "Failed to create temporary script file"
        assert list(script_dir.iterdir()) == []

    def test_output_decoded_with_script_encoding(self, executor: DiskpartExecutor) -> None:
        with patch(RUN, return_value=completed("ok")) as mock_run:
            executor.execute("list disk")
        assert mock_run.call_args.kwargs["encoding"] == SCRIPT_ENCODING

    def test_audit_trail(self, executor: DiskpartExecutor) -> None:
        with patch(RUN, return_value=completed("DiskPart successfully cleaned the disk.")):
            executor.execute("select disk 1\nclean")

        messages = [entry["message"] for entry in executor.audit.entries]
        assert messages == ["Executing diskpart script", "Diskpart script succeeded"]
        assert executor.audit.entries[0]["details"] == {"script": "select disk 1\nclean"}


@pytest.mark.integration
class TestExecuteAndParse:
    """Tests for DiskpartExecutor.execute_and_parse."""

    def test_parsed_payload(self, executor: DiskpartExecutor, list_disk_output: str) -> None:
        with patch(RUN, return_value=completed(list_disk_output)):
            result = executor.execute_and_parse("list disk", parse_list_disk)

        assert result.success is True
        assert result.message == "Command executed and parsed successfully"
        assert [d.id for d in result.data] == [0, 1, 2]
        assert result.details == list_disk_output

    def test_parse_error(self, executor: DiskpartExecutor) -> None:
        output = "Disk 1 is now the selected disk."
        with patch(RUN, return_value=completed(output)):
            result = executor.execute_and_parse("select disk 1", parse_list_disk)

        assert result.success is False
        assert result.error_code == "PARSE_ERROR"
        assert result.details == output

    def test_unexpected_parser_error(self, executor: DiskpartExecutor) -> None:
        def broken(output: str) -> list:
            raise IndexError("list index out of range")

        with patch(RUN, return_value=completed("ok")):
            result = executor.execute_and_parse("list disk", broken)

        assert result.error_code == "PARSE_ERROR"
        assert "list index out of range" in result.message

    def test_execution_failure_skips_parser(self, executor: DiskpartExecutor) -> None:
        def parser(output: str) -> list:
            raise AssertionError("parser must not run")

        with patch(RUN, return_value=completed("Access is denied.", returncode=5)):
            result = executor.execute_and_parse("list disk", parser)

        assert result.error_code == "ACCESS_DENIED"


@pytest.mark.integration
class TestAvailability:
    """Tests for tool discovery."""

    def test_available(self, executor: DiskpartExecutor) -> None:
        with patch(
            "diskpartctl.diskpart.executor.find_executable",
            return_value="C:\\Windows\\System32\\diskpart.exe",
        ):
            assert executor.is_available() is True
            assert executor.get_version() == "Available"

    def test_not_found(self, executor: DiskpartExecutor) -> None:
        with patch("diskpartctl.diskpart.executor.find_executable", return_value=None):
            assert executor.get_version() == "Not Found"


@pytest.mark.integration
class TestAuditBounds:
    """The audit trail keeps only the newest entries."""

    def test_custom_limit(self, sample_config) -> None:
        audit = AuditLog(logger=Mock(), max_entries=10)
        executor = DiskpartExecutor(
            sample_config.executor, elevation_probe=lambda: True, audit=audit
        )

        with patch(RUN, return_value=completed("ok")):
            for _ in range(100):
                executor.execute("list disk")

        assert len(executor.audit.entries) == 10
        assert executor.audit.entries[-1]["message"] == "Diskpart script succeeded"

    def test_default_limit(self, executor: DiskpartExecutor) -> None:
        with patch(RUN, return_value=completed("ok")):
            for _ in range(DEFAULT_AUDIT_ENTRIES):
                executor.execute("list disk")

        assert len(executor.audit.entries) == DEFAULT_AUDIT_ENTRIES
