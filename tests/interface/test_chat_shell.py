import io
from types import SimpleNamespace

from kb_agent.application.dto.route_dto import RouteOutcome
from kb_agent.application.session import ChatSession
from kb_agent.config.settings import AppSettings
from kb_agent.domain.errors import RetrievalError
from kb_agent.domain.models import UnrecognizedIntent
from kb_agent.interface.cli import main as cli_main
from kb_agent.interface.cli.chat import HELP_TEXT, ChatShell


class FakeRouter:
    def __init__(self, error: BaseException | None = None) -> None:
        self.error = error
        self.received = []

    def resolve(self, query, attachment=None):
        self.received.append((query, attachment))
        if self.error is not None:
            raise self.error
        return RouteOutcome(response=f"echo: {query}", intent=UnrecognizedIntent("x"))


def _run(lines: str, router=None) -> tuple[int, str, ChatSession]:
    session = ChatSession(router or FakeRouter())
    out = io.StringIO()
    code = ChatShell(session, stdin=io.StringIO(lines), stdout=out).run()
    return code, out.getvalue(), session


def test_query_prints_response():
    code, out, _ = _run("hello there\n/exit\n")
    assert code == 0
    assert "echo: hello there" in out


def test_eof_exits_cleanly():
    code, _, _ = _run("")
    assert code == 0


def test_help_lists_commands():
    _, out, _ = _run("/help\n")
    assert HELP_TEXT in out
    for cmd in ("/add <filepath>", "/history", "/help", "/exit"):
        assert cmd in out


def test_blank_lines_are_ignored():
    router = FakeRouter()
    _run("\n   \n/exit\n", router)
    assert router.received == []


def test_add_then_history(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hi", encoding="utf-8")
    router = FakeRouter()
    _, out, _ = _run(f"/add {path}\nsummarize it\n/history\n", router)

    assert f"File {path} ready for next query" in out
    assert f"1: System: File {path} ready for next query" in out
    assert "2: User: summarize it" in out
    assert "3: Assistant: echo: summarize it" in out
    assert router.received[0][1].released


def test_add_missing_file_reports_error(tmp_path):
    _, out, session = _run(f"/add {tmp_path / 'nope.txt'}\n")
    assert "Error: cannot load" in out
    assert session.pending is None


def test_add_without_path_shows_usage():
    _, out, _ = _run("/add\n")
    assert "Usage: /add <filepath>" in out


def test_empty_history():
    _, out, _ = _run("/history\n")
    assert "(no history)" in out


def test_unknown_command():
    _, out, _ = _run("/frobnicate\n")
    assert "Unknown command: /frobnicate" in out


def test_query_error_is_printed_and_loop_continues():
    router = FakeRouter(error=RetrievalError("what?", "qdrant down"))
    _, out, _ = _run("what?\nagain\n", router)
    assert "Error: retrieval failed for query 'what?': qdrant down" in out
    assert len(router.received) == 2


def test_interrupted_query_is_cancelled():
    router = FakeRouter(error=KeyboardInterrupt())
    _, out, _ = _run("slow question\n/exit\n", router)
    assert "Query cancelled" in out


def test_parser_accepts_config_before_or_after_subcommand():
    parser = cli_main.build_parser()
    assert parser.parse_args(["--config", "a.yaml", "chat"]).config == "a.yaml"
    assert parser.parse_args(["chat", "--config", "b.yaml"]).config == "b.yaml"
    args = parser.parse_args(["ingest", "doc.pdf", "--log-level", "debug"])
    assert (args.command, args.path, args.log_level) == ("ingest", "doc.pdf", "DEBUG")
    assert parser.parse_args([]).command is None


def test_run_exits_1_on_bad_config(tmp_path, capsys):
    assert cli_main.run(["--config", str(tmp_path / "absent.yaml")]) == 1
    assert "Error:" in capsys.readouterr().err


def test_run_chat_uses_built_session(monkeypatch):
    monkeypatch.setattr(cli_main, "load_settings", lambda path: AppSettings())
    monkeypatch.setattr(cli_main, "build_session", lambda settings: ChatSession(FakeRouter()))
    out = io.StringIO()
    code = cli_main.run(["chat"], stdin=io.StringIO("ping\n/exit\n"), stdout=out)
    assert code == 0
    assert "echo: ping" in out.getvalue()


def test_run_ingest(monkeypatch, tmp_path):
    path = tmp_path / "doc.txt"
    path.write_text("content", encoding="utf-8")
    seen = {}

    def ingest(attachment):
        seen["data"] = attachment.read()
        return f"Docs updated successfully: {attachment.display_name}"

    router = SimpleNamespace(store=SimpleNamespace(ensure_ready=lambda: 3), ingest=ingest)
    monkeypatch.setattr(cli_main, "load_settings", lambda path: AppSettings())
    monkeypatch.setattr(cli_main, "build_router", lambda settings: router)
    out = io.StringIO()

    assert cli_main.run(["ingest", str(path)], stdout=out) == 0
    assert out.getvalue().strip() == "Docs updated successfully: doc.txt"
    assert seen["data"] == b"content"


def test_run_ingest_missing_file(monkeypatch, tmp_path, capsys):
    router = SimpleNamespace(store=SimpleNamespace(ensure_ready=lambda: 3), ingest=None)
    monkeypatch.setattr(cli_main, "load_settings", lambda path: AppSettings())
    monkeypatch.setattr(cli_main, "build_router", lambda settings: router)
    assert cli_main.run(["ingest", str(tmp_path / "absent.txt")]) == 1
    assert "cannot load" in capsys.readouterr().err
