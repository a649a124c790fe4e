"""Tests for the CLI command parser."""

import pytest

from cli.models import ForgetCommand, ListCommand, PendingCommand, UploadCommand
from cli.parser import ParseError, parse_command


class TestUploadParsing:
    """Tests for 'upload' parsing."""

    def test_single_file_defaults_to_root(self):
        assert parse_command("upload movie.mp4") == UploadCommand(paths=("movie.mp4",), target_path="/")

    def test_multiple_files_and_target(self):
        cmd = parse_command("upload a.jpg b.jpg --to /photos/2024")
        assert cmd.paths == ("a.jpg", "b.jpg")
        assert cmd.target_path == "/photos/2024"

    def test_target_gets_leading_slash(self):
        assert parse_command("upload a.jpg --to photos").target_path == "/photos"

    def test_target_before_paths(self):
        cmd = parse_command("upload --to /x a.jpg")
        assert cmd.paths == ("a.jpg",)
        assert cmd.target_path == "/x"

    def test_quoted_path_with_spaces(self):
        cmd = parse_command('upload "holiday video.mp4"')
        assert cmd.paths == ("holiday video.mp4",)

    def test_requires_a_path(self):
        with pytest.raises(ParseError, match="at least one"):
            parse_command("upload --to /x")

    def test_target_flag_requires_value(self):
        with pytest.raises(ParseError, match="--to requires"):
            parse_command("upload a.jpg --to")


class TestOtherCommands:
    """Tests for ls, pending and forget parsing."""

    def test_ls_default(self):
        assert parse_command("ls") == ListCommand(path="/")

    def test_ls_with_path(self):
        assert parse_command("ls /videos") == ListCommand(path="/videos")

    def test_ls_too_many_args(self):
        with pytest.raises(ParseError):
            parse_command("ls /a /b")

    def test_pending(self):
        assert parse_command("pending") == PendingCommand()

    def test_pending_rejects_args(self):
        with pytest.raises(ParseError):
            parse_command("pending now")

    def test_forget_key(self):
        cmd = parse_command("forget upload_progress_abc")
        assert cmd == ForgetCommand(key="upload_progress_abc")
        assert not cmd.forget_all

    def test_forget_all(self):
        assert parse_command("forget all").forget_all

    def test_forget_requires_one_arg(self):
        with pytest.raises(ParseError, match="exactly 1"):
            parse_command("forget")


class TestInvalidInput:
    """Tests for malformed input."""

    def test_empty(self):
        with pytest.raises(ParseError, match="Empty command"):
            parse_command("   ")

    def test_unknown_command(self):
        with pytest.raises(ParseError, match="Unknown command: delete"):
            parse_command("delete x")

    def test_unbalanced_quotes(self):
        with pytest.raises(ParseError, match="Invalid syntax"):
            parse_command('upload "unterminated')
