"""Tests for the task-chat command line."""
from __future__ import annotations

from cli import main
from task_chat_assistant.config import Settings
from task_chat_assistant.interfaces.chat_cli import run_repl

USER = "cli@example.com"


def test_add_list_search_complete(capsys):
    assert main(["--user", USER, "add", "Write tests", "--priority", "high",
                 "--due", "2030-01-01T09:00:00+00:00"]) == 0
    out = capsys.readouterr().out
    assert 'Created task "Write tests"' in out
    task_id = out.strip().rsplit("(", 1)[1].rstrip(")")

    assert main(["--user", USER, "list"]) == 0
    listing = capsys.readouterr().out
    assert f"{task_id} | Write tests | todo | high | 2030-01-01 09:00" in listing

    assert main(["--user", USER, "search", "tests"]) == 0
    assert "Write tests" in capsys.readouterr().out

    assert main(["--user", USER, "complete", task_id]) == 0
    assert 'Task "Write tests" marked as completed' in capsys.readouterr().out


def test_list_is_scoped_to_user(capsys):
    main(["--user", USER, "add", "Mine"])
    capsys.readouterr()
    assert main(["--user", "someone@example.com", "list"]) == 0
    assert "No tasks found." in capsys.readouterr().out


def test_errors_return_non_zero(capsys):
    assert main(["--user", USER, "complete", "nope"]) == 1
    assert "No task found with ID: nope" in capsys.readouterr().err

    assert main(["--user", USER, "add", "Bad date", "--due", "whenever-ish"]) == 1
    assert "Could not understand due date" in capsys.readouterr().err


def test_repl_runs_turns_until_quit(model, store):
    inputs = iter(["hello", "", "quit"])
    output = []
    model.queue_reply("Hi! What can I do?")

    code = run_repl(
        USER,
        model=model,
        store=store,
        settings=Settings(),
        read=lambda prompt: next(inputs),
        write=output.append,
    )

    assert code == 0
    assert any("Assistant > Hi! What can I do?" in line for line in output)
    assert output[-1] == "Goodbye!"


def test_repl_stops_on_eof(model, store):
    def read(prompt):
        raise EOFError

    output = []
    assert run_repl(USER, model=model, store=store, settings=Settings(), read=read, write=output.append) == 0
    assert output[-1] == "Goodbye!"


def test_repl_keeps_one_event_loop_for_the_model_client(store):
    import asyncio

    import httpx
    from anthropic import AsyncAnthropic

    from task_chat_assistant.llm import AnthropicLanguageModel

    loops = []

    async def handler(request):
        loops.append(asyncio.get_running_loop())
        return httpx.Response(200, json={
            "id": f"msg_{len(loops)}",
            "type": "message",
            "role": "assistant",
            "model": "claude-test",
            "content": [{"type": "text", "text": "Happy to help."}],
            "stop_reason": "end_turn",
            "stop_sequence": None,
            "usage": {"input_tokens": 1, "output_tokens": 1},
        })

    client = AsyncAnthropic(
        api_key="test-key",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    model = AnthropicLanguageModel(client=client)
    inputs = iter(["hello", "and again", "quit"])
    output = []

    code = run_repl(
        USER,
        model=model,
        store=store,
        settings=Settings(),
        read=lambda prompt: next(inputs),
        write=output.append,
    )

    assert code == 0
    replies = [line for line in output if line.startswith("\nAssistant >")]
    assert replies == ["\nAssistant > Happy to help."] * 2
    # Intent analysis and a reply for each of the two turns
    assert len(loops) == 4
    assert all(loop is loops[0] for loop in loops)
