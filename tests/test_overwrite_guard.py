"""Unit tests for the overwrite guard."""

from unittest.mock import Mock, patch

import click

from pygdrive.overwrite_guard import OverwriteGuard, console_confirm


class TestOverwriteGuard:
    """Tests for OverwriteGuard.check_and_confirm."""

    def test_no_collisions(self, drive, quiet_out):
        """Test that the prompt is skipped without collisions."""
        drive.add_file("other.txt")
        confirm = Mock()
        guard = OverwriteGuard(drive, quiet_out, confirm=confirm)

        assert guard.check_and_confirm("root", ["a.txt", "sub"])
        confirm.assert_not_called()

    def test_collision_confirmed(self, drive, quiet_out):
        """Test that a confirmed prompt proceeds."""
        drive.add_file("a.txt")
        confirm = Mock(return_value=True)
        guard = OverwriteGuard(drive, quiet_out, confirm=confirm)

        assert guard.check_and_confirm("root", ["a.txt"])
        confirm.assert_called_once()

    def test_collision_declined(self, drive, quiet_out):
        """Test that a declined prompt aborts without writes."""
        drive.add_folder("sub")
        guard = OverwriteGuard(drive, quiet_out, confirm=Mock(return_value=False))

        assert not guard.check_and_confirm("root", ["a.txt", "sub"])
        assert drive.writes == []

    def test_collisions_listed(self, drive):
        """Test that colliding names are shown with their kind."""
        drive.add_folder("sub")
        drive.add_file("a.txt")
        out = Mock()
        guard = OverwriteGuard(drive, out, confirm=Mock(return_value=False))

        guard.check_and_confirm("root", ["a.txt", "sub"])

        messages = [call.args[0] for call in out.prompt_warning.call_args_list]
        assert "  a.txt (file)" in messages
        assert "  sub (directory)" in messages

    def test_overwrite_skips_everything(self, drive, quiet_out):
        """Test that overwrite mode neither lists nor prompts."""
        drive.add_file("a.txt")
        confirm = Mock()
        guard = OverwriteGuard(drive, quiet_out, confirm=confirm, overwrite=True)

        assert guard.check_and_confirm("root", ["a.txt"])
        confirm.assert_not_called()
        assert drive.calls == []

    def test_nested_collisions_ignored(self, drive, quiet_out):
        """Test that only direct children are compared."""
        sub = drive.add_folder("sub")
        drive.add_file("a.txt", sub.id)
        confirm = Mock()
        guard = OverwriteGuard(drive, quiet_out, confirm=confirm)

        assert guard.check_and_confirm("root", ["a.txt"])
        confirm.assert_not_called()


class TestConsoleConfirm:
    """Tests for console_confirm."""

    @patch("pygdrive.overwrite_guard.click.prompt")
    def test_yes_answers(self, mock_prompt):
        """Test the accepted answers."""
        for answer in ("y", "Y", "yes", "YES", " yes "):
            mock_prompt.return_value = answer
            assert console_confirm("Continue?")

    @patch("pygdrive.overwrite_guard.click.prompt")
    def test_other_answers(self, mock_prompt):
        """Test that everything else declines."""
        for answer in ("", "n", "no", "yep", "ja"):
            mock_prompt.return_value = answer
            assert not console_confirm("Continue?")

    @patch("pygdrive.overwrite_guard.click.prompt")
    def test_end_of_input(self, mock_prompt):
        """Test that an aborted prompt declines."""
        mock_prompt.side_effect = click.Abort()
        assert not console_confirm("Continue?")

    @patch("pygdrive.overwrite_guard.click.prompt")
    def test_prompt_on_stderr(self, mock_prompt):
        """Test that the question goes to stderr, away from JSON output."""
        mock_prompt.return_value = "y"
        console_confirm("Continue?")
        assert mock_prompt.call_args.kwargs["err"] is True
