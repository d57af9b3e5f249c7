"""Unit tests for the command-line entry point."""

import pytest

from toolbridge.__main__ import build_parser, main


def test_parse_chat_with_server_arguments():
    args = build_parser().parse_args(
        ["chat", "--model", "qwen2.5:14b", "python", "-m", "toolbridge", "serve", "echo"]
    )

    assert args.command == "chat"
    assert args.model == "qwen2.5:14b"
    assert args.server_command == "python"
    assert args.server_args == ["-m", "toolbridge", "serve", "echo"]


def test_parse_serve():
    args = build_parser().parse_args(["serve", "rails", "--project-path", "/srv/blog"])

    assert args.server == "rails"
    assert str(args.project_path) == "/srv/blog"


def test_serve_rejects_unknown_server():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["serve", "laravel"])


def test_chat_exits_non_zero_when_server_cannot_start(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)

    status = main(["chat", "/nonexistent/tool-server"])

    assert status == 1
    assert "Failed to connect to tool server" in capsys.readouterr().err


def test_parse_serve_dotnet():
    args = build_parser().parse_args(["serve", "dotnet"])

    assert args.server == "dotnet"
    assert args.project_path is None
