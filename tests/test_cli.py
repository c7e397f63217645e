"""Unit tests for the pygdrive CLI commands."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from pygdrive.cli import _entry_summary, main
from pygdrive.exceptions import GDriveConfigError, GDriveServerError
from pygdrive.models import ROOT_ID, DriveEntry, EntryKind


@pytest.fixture
def runner():
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_client(drive):
    """Make every command talk to the in-memory drive."""
    with patch("pygdrive.cli.DriveClient", return_value=drive) as mock:
        yield mock


@pytest.fixture
def local_file(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes(b"some notes")
    return path


class TestMainGroup:
    """Tests for the main CLI group."""

    def test_main_help(self, runner):
        """Test main help shows all commands."""
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "PyGDrive" in result.output
        assert "--token" in result.output
        for command in ("push", "upload", "resolve", "config"):
            assert command in result.output

    def test_token_passed_to_client(self, runner, mock_client):
        """Test that the global --token option reaches the client."""
        runner.invoke(main, ["--token", "abc", "resolve", "/"])
        mock_client.assert_called_once_with(access_token="abc", api_url=None)

    def test_missing_token(self, runner, local_file):
        """Test that configuration errors are reported."""
        with patch(
            "pygdrive.cli.DriveClient",
            side_effect=GDriveConfigError("Access token not configured."),
        ):
            result = runner.invoke(main, ["push", str(local_file), "/"])

        assert result.exit_code == 1
        assert "Error: Access token not configured." in result.output


class TestEntrySummary:
    """Tests for the upload summary rows."""

    def test_timestamps(self):
        """Test that API timestamps are shown as date and time."""
        entry = DriveEntry(
            id="f1",
            name="notes.txt",
            kind=EntryKind.FILE,
            created_time="2025-01-15T10:30:00",
            modified_time=None,
        )

        rows = dict(_entry_summary(entry))

        assert rows["Created"] == "2025-01-15 10:30:00"
        assert rows["Modified"] == ""


class TestPushFile:
    """Tests for pushing a single file."""

    def test_into_folder_keeps_name(self, runner, drive, mock_client, local_file):
        """Test that a trailing slash keeps the local file name."""
        docs = drive.add_folder("docs")

        result = runner.invoke(main, ["push", str(local_file), "/docs/"])

        assert result.exit_code == 0, result.output
        entry = drive.child(docs.id, "notes.txt")
        assert entry is not None
        assert drive.contents[entry.id] == b"some notes"
        assert "Upload Complete" in result.output
        assert entry.id in result.output

    def test_print_only_id(self, runner, drive, mock_client, local_file):
        """Test that only the new id is printed."""
        result = runner.invoke(
            main, ["push", "--print-only-id", str(local_file), "/"]
        )

        assert result.exit_code == 0, result.output
        entry = drive.child(ROOT_ID, "notes.txt")
        assert result.output.strip() == entry.id

    def test_remote_name_and_missing_folder(
        self, runner, drive, mock_client, local_file
    ):
        """Test /x/y/z.txt with x existing: y is created before z.txt."""
        x = drive.add_folder("x")

        result = runner.invoke(main, ["push", str(local_file), "/x/y/z.txt"])

        assert result.exit_code == 0, result.output
        y = drive.child(x.id, "y")
        assert y is not None
        assert drive.writes == [
            ("create_folder", ("y", x.id)),
            ("create_or_update_file", ("z.txt", y.id)),
        ]

    def test_collision_declined(self, runner, drive, mock_client, local_file):
        """Test that declining the prompt writes nothing."""
        drive.add_file("notes.txt")

        result = runner.invoke(main, ["push", str(local_file), "/"], input="n\n")

        assert result.exit_code == 0
        assert "notes.txt (file)" in result.output
        assert "Upload cancelled." in result.output
        assert drive.writes == []

    def test_collision_confirmed(self, runner, drive, mock_client, local_file):
        """Test that confirming the prompt uploads a second copy."""
        drive.add_file("notes.txt")

        result = runner.invoke(main, ["push", str(local_file), "/"], input="y\n")

        assert result.exit_code == 0, result.output
        names = [e.name for e in drive.children(ROOT_ID)]
        assert names == ["notes.txt", "notes.txt"]

    def test_quiet_still_lists_collisions(
        self, runner, drive, mock_client, local_file
    ):
        """Test that -q keeps the colliding names visible before asking."""
        drive.add_file("notes.txt")

        result = runner.invoke(
            main, ["-q", "push", str(local_file), "/"], input="n\n"
        )

        assert result.exit_code == 0
        assert "notes.txt (file)" in result.output
        assert "Upload anyway, creating duplicates?" in result.output
        assert drive.writes == []

    def test_end_of_input_declines(self, runner, drive, mock_client, local_file):
        """Test that closing stdin at the prompt aborts."""
        drive.add_file("notes.txt")

        result = runner.invoke(main, ["push", str(local_file), "/"], input="")

        assert result.exit_code == 0
        assert drive.writes == []

    def test_overwrite_flag_skips_prompt(self, runner, drive, mock_client, local_file):
        """Test that -y uploads without asking."""
        drive.add_file("notes.txt")

        result = runner.invoke(main, ["push", "-y", str(local_file), "/"])

        assert result.exit_code == 0, result.output
        assert len(drive.children(ROOT_ID)) == 2
        assert not any(name == "find" and args[1] is None for name, args in drive.calls)

    def test_destination_is_a_file(self, runner, drive, mock_client, local_file):
        """Test that pushing into a file fails."""
        drive.add_file("report.txt")

        result = runner.invoke(main, ["push", str(local_file), "/report.txt/"])

        assert result.exit_code == 1
        assert "is not a directory" in result.output
        assert drive.writes == []

    def test_json_output(self, runner, drive, mock_client, local_file):
        """Test that --json prints the created entry."""
        result = runner.invoke(main, ["--json", "push", str(local_file), "/"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["name"] == "notes.txt"
        assert data["size"] == 10

    def test_mime_option(self, runner, drive, mock_client, local_file):
        """Test that --mime overrides the guessed type."""
        result = runner.invoke(
            main, ["push", "--mime", "application/x-notes", str(local_file), "/"]
        )

        assert result.exit_code == 0, result.output
        assert drive.child(ROOT_ID, "notes.txt").mime_type == "application/x-notes"

    def test_invalid_chunk_size(self, runner, mock_client, local_file):
        """Test that chunk sizes must be powers of two."""
        result = runner.invoke(main, ["push", "-c", "3", str(local_file), "/"])

        assert result.exit_code == 2
        assert "Chunk size must be one of" in result.output

    def test_keyboard_interrupt(self, runner, mock_client, local_file):
        """Test that Ctrl-C exits with status 130."""
        with patch("pygdrive.cli._run_push", side_effect=KeyboardInterrupt):
            result = runner.invoke(main, ["push", str(local_file), "/"])

        assert result.exit_code == 130
        assert "Upload cancelled by user" in result.output


class TestPushDirectory:
    """Tests for pushing directories."""

    def test_requires_recursive(self, runner, drive, mock_client, sample_tree):
        """Test that directories need --recursive."""
        result = runner.invoke(main, ["push", str(sample_tree), "/"])

        assert result.exit_code == 1
        assert "is a directory" in result.output
        assert drive.calls == []

    def test_mirror_into_folder(self, runner, drive, mock_client, sample_tree):
        """Test that a trailing slash mirrors the directory by name."""
        parent = drive.add_folder("P")

        result = runner.invoke(main, ["push", "-r", str(sample_tree), "/P/"])

        assert result.exit_code == 0, result.output
        root = drive.child(parent.id, "root")
        sub = drive.child(root.id, "sub")
        assert drive.child(root.id, "a.txt") is not None
        assert drive.child(sub.id, "b.txt") is not None
        assert "Found 2 files in 2 directories with a total size of 15 B" in (
            result.output
        )
        assert "Uploaded 2 files in 2 directories with a total size of 15 B" in (
            result.output
        )

    def test_existing_destination_declined(
        self, runner, drive, mock_client, sample_tree
    ):
        """Test the abort path: colliding names and a refusal write nothing."""
        dest = drive.add_folder("P")
        drive.add_file("a.txt", dest.id)

        result = runner.invoke(
            main, ["push", "-r", str(sample_tree), "/P"], input="no\n"
        )

        assert result.exit_code == 0
        assert "Upload cancelled." in result.output
        assert drive.writes == []

    def test_existing_destination_without_collisions(
        self, runner, drive, mock_client, sample_tree
    ):
        """Test that the tree root binds to an existing destination."""
        dest = drive.add_folder("P")

        result = runner.invoke(main, ["push", "-r", str(sample_tree), "/P"])

        assert result.exit_code == 0, result.output
        assert drive.child(dest.id, "root") is None
        assert drive.child(dest.id, "a.txt") is not None
        assert [name for name, _ in drive.writes].count("create_folder") == 1

    def test_continue_on_error_exits_nonzero(
        self, runner, drive, mock_client, sample_tree
    ):
        """Test that recorded failures still fail the command."""
        drive.upload_errors["a.txt"] = GDriveServerError("boom")

        result = runner.invoke(
            main, ["push", "-r", "--continue-on-error", str(sample_tree), "/P/"]
        )

        assert result.exit_code == 1
        assert "Error: 1 files failed to upload" in result.output
        assert "Uploaded 1 files" in result.output

    def test_upload_reports_failures(self, runner, drive, mock_client, sample_tree):
        """Test that upload reports failed files through the error path."""
        drive.upload_errors["b.txt"] = GDriveServerError("boom")

        result = runner.invoke(
            main, ["upload", "-r", "--continue-on-error", str(sample_tree), "/"]
        )

        assert result.exit_code == 1
        assert "Error: 1 files failed to upload" in result.output


class TestUploadCommand:
    """Tests for the upload command."""

    def test_default_root(self, runner, drive, mock_client, local_file):
        """Test that files go to My Drive by default."""
        result = runner.invoke(main, ["upload", str(local_file)])

        assert result.exit_code == 0, result.output
        assert drive.child(ROOT_ID, "notes.txt") is not None

    def test_no_overwrite_check(self, runner, drive, mock_client, local_file):
        """Test that upload never prompts."""
        drive.add_file("notes.txt")

        result = runner.invoke(main, ["upload", str(local_file), "/"])

        assert result.exit_code == 0, result.output
        assert len(drive.children(ROOT_ID)) == 2

    def test_directory_into_new_folder(self, runner, drive, mock_client, sample_tree):
        """Test that REMOTE_DIR is created and the directory mirrored into it."""
        result = runner.invoke(main, ["upload", "-r", str(sample_tree), "/backup"])

        assert result.exit_code == 0, result.output
        backup = drive.child(ROOT_ID, "backup")
        root = drive.child(backup.id, "root")
        assert drive.child(root.id, "a.txt") is not None


class TestResolveCommand:
    """Tests for the resolve command."""

    def test_wildcard(self, runner, drive, mock_client):
        """Test that matches are listed."""
        photos = drive.add_folder("photos")
        drive.add_file("a.jpg", photos.id)
        drive.add_file("b.png", photos.id)

        result = runner.invoke(main, ["resolve", "/photos/*.jpg"])

        assert result.exit_code == 0, result.output
        assert "a.jpg" in result.output
        assert "b.png" not in result.output

    def test_id_only(self, runner, drive, mock_client):
        """Test printing ids only."""
        photos = drive.add_folder("photos")

        result = runner.invoke(main, ["resolve", "--id-only", "/photos"])

        assert result.output.strip() == photos.id

    def test_not_found(self, runner, mock_client):
        """Test that a missing segment is reported."""
        result = runner.invoke(main, ["resolve", "/missing/deeper"])

        assert result.exit_code == 1
        assert "Path component not found: missing" in result.output

    def test_create(self, runner, drive, mock_client):
        """Test that --create makes missing folders."""
        result = runner.invoke(main, ["resolve", "--create", "--id-only", "/a/b"])

        assert result.exit_code == 0, result.output
        a = drive.child(ROOT_ID, "a")
        assert result.output.strip() == drive.child(a.id, "b").id


class TestConfigCommands:
    """Tests for the config command group."""

    def test_show(self, runner, tmp_path):
        """Test that the config file location is shown."""
        with patch("pygdrive.cli.config") as mock_config:
            mock_config.get_config_path.return_value = tmp_path / "config"
            mock_config.is_configured.return_value = False
            mock_config.api_url = "https://api.test"
            mock_config.upload_url = "https://upload.test"

            result = runner.invoke(main, ["config", "show"])

        assert result.exit_code == 0, result.output
        assert "Token configured" in result.output
        assert "no" in result.output

    def test_set_token(self, runner, tmp_path):
        """Test that the token is saved."""
        with patch("pygdrive.cli.config") as mock_config:
            mock_config.get_config_path.return_value = tmp_path / "config"

            result = runner.invoke(main, ["config", "set-token", "--token", " abc "])

        assert result.exit_code == 0, result.output
        mock_config.save_access_token.assert_called_once_with("abc")
        assert "Access token saved" in result.output
