"""
Command Engine Tests
--------------------
End-to-end tests for resolve_and_dispatch.

Tests cover:
- Exact and alias resolution
- Intent, whitespace and fuzzy tiers for other scripts
- Typo correction with and without confirmation
- Suggestions and unresolved outcomes
- Handler failure isolation and reporting
- Ties, confirm failures and duplicates recorded without raising
- Async entry point, turn ids and registry reload
"""

import asyncio
import warnings

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from commands.errors import DuplicateRegistrationError
from commands.registry import Command, CommandRegistry
from core.engine import CommandEngine, OutcomeStatus, create_engine
from core.errors import ErrorCategory, HandlerExecutionError
from infra.config import EngineConfig
from infra.logging import get_turn_id


def total_calls(handlers):
    return sum(len(h.calls) for h in handlers.values())


class TestExactResolution:
    """Names and aliases resolve without touching later tiers."""

    def test_name_with_args(self, engine, handlers, confirm):
        outcome = engine.resolve_and_dispatch("/git status")
        assert outcome.status == OutcomeStatus.EXECUTED
        assert outcome.tier == "exact"
        assert outcome.chosen_command == "git"
        assert outcome.args == ["status"]
        assert len(handlers["git"].calls) == 1
        context = handlers["git"].calls[0]
        assert context.args == ["status"]
        assert context.original_input == "/git status"
        assert context.environment["host"] == "test"
        assert confirm.prompts == []

    def test_trigger_optional(self, engine, handlers):
        outcome = engine.resolve_and_dispatch("git push")
        assert outcome.chosen_command == "git"
        assert outcome.args == ["push"]

    def test_every_name_and_alias(self, engine, registry, confirm):
        for command in registry.all_commands():
            for key in (command.name, *command.all_aliases):
                resolution = engine.resolve(f"/{key}")
                assert resolution.command is command
                assert resolution.tier == "exact"
        assert confirm.prompts == []

    def test_case_insensitive(self, engine):
        assert engine.resolve_and_dispatch("/GIT Status").chosen_command == "git"

    def test_localized_name(self, engine, handlers):
        outcome = engine.resolve_and_dispatch("/도움말")
        assert outcome.tier == "exact"
        assert outcome.chosen_command == "help"

    def test_per_call_environment(self, engine, handlers):
        engine.resolve_and_dispatch("/git", environment={"cwd": "/tmp"})
        environment = handlers["git"].calls[0].environment
        assert environment == {"host": "test", "cwd": "/tmp"}


class TestOtherScriptResolution:
    """Intent and fuzzy tiers."""

    def test_exact_phrase(self, engine, handlers):
        outcome = engine.resolve_and_dispatch("/뭐해야해")
        assert outcome.status == OutcomeStatus.EXECUTED
        assert outcome.tier == "intent"
        assert len(handlers["help"].calls) == 1

    def test_whitespace_variant(self, engine, handlers):
        outcome = engine.resolve_and_dispatch("/뭐 해야 해")
        assert outcome.chosen_command == "help"
        assert outcome.tier == "whitespace"

    def test_containment_with_fixed_args(self, engine, handlers):
        outcome = engine.resolve_and_dispatch("/할일추가해줘")
        assert outcome.chosen_command == "todo"
        assert outcome.args == ["add"]
        assert handlers["todo"].calls[0].args == ["add"]
        assert handlers["todo"].calls[0].original_input == "/할일추가해줘"

    def test_without_trigger(self, engine, handlers):
        assert engine.resolve_and_dispatch("도와줘").chosen_command == "help"

    def test_fuzzy(self, engine, handlers):
        outcome = engine.resolve_and_dispatch("/기억헤")
        assert outcome.status == OutcomeStatus.EXECUTED
        assert outcome.tier == "fuzzy"
        assert outcome.chosen_command == "memory"

    def test_other_script_never_asks_to_confirm(self, engine, confirm):
        engine.resolve_and_dispatch("/쀍쀍쀍")
        engine.resolve_and_dispatch("/기억헤")
        assert confirm.prompts == []

    def test_gibberish_is_unresolved(self, engine, handlers, reporter):
        outcome = engine.resolve_and_dispatch("/쀍쀍쀍")
        assert outcome.status == OutcomeStatus.UNRESOLVED
        assert outcome.candidates == []
        assert total_calls(handlers) == 0
        assert len(reporter.messages) == 1


class TestTypoCorrection:
    """Command-alphabet tokens that miss exact lookup."""

    def test_confirmed(self, engine, handlers, confirm):
        outcome = engine.resolve_and_dispatch("/gut push")
        assert outcome.status == OutcomeStatus.CORRECTED_AND_EXECUTED
        assert outcome.tier == "typo"
        assert outcome.original_token == "gut"
        assert outcome.chosen_command == "git"
        assert handlers["git"].calls[0].args == ["push"]
        assert handlers["git"].calls[0].original_input == "/gut push"
        assert len(confirm.prompts) == 1

    def test_declined(self, engine, handlers, confirm, reporter):
        confirm.answer = False
        outcome = engine.resolve_and_dispatch("/gut push")
        assert outcome.status == OutcomeStatus.SUGGESTIONS_OFFERED
        assert [c.name for c in outcome.candidates] == ["git"]
        assert total_calls(handlers) == 0
        assert reporter.messages == []

    def test_transposition_is_only_suggested(self, engine, handlers, confirm):
        outcome = engine.resolve_and_dispatch("/gti")
        assert outcome.status == OutcomeStatus.SUGGESTIONS_OFFERED
        assert outcome.candidates[0].name == "git"
        assert confirm.prompts == []
        assert total_calls(handlers) == 0

    def test_no_confirm_capability(self, registry, handlers):
        engine = CommandEngine(registry)
        outcome = engine.resolve_and_dispatch("/gut")
        assert outcome.status == OutcomeStatus.SUGGESTIONS_OFFERED
        assert total_calls(handlers) == 0

    def test_unresolved(self, engine, handlers, confirm, reporter):
        outcome = engine.resolve_and_dispatch("/zzzzqqq")
        assert outcome.status == OutcomeStatus.UNRESOLVED
        assert outcome.original_token == "zzzzqqq"
        assert total_calls(handlers) == 0
        assert confirm.prompts == []
        assert reporter.messages == ["Unknown command: zzzzqqq"]

    def test_at_most_one_handler_per_call(self, engine, handlers):
        for text in ("/git", "/gut", "/gti", "/zzzz", "/뭐해야해", "/기억헤", "/쀍"):
            before = total_calls(handlers)
            engine.resolve_and_dispatch(text)
            assert total_calls(handlers) - before <= 1


class TestMalformedInput:
    """Empty and odd input never raises."""

    @pytest.mark.parametrize("text", ["", "   ", "/", "/   ", " / \t "])
    def test_unresolved_without_crash(self, engine, handlers, text):
        outcome = engine.resolve_and_dispatch(text)
        assert outcome.status in (OutcomeStatus.UNRESOLVED, OutcomeStatus.SUGGESTIONS_OFFERED)
        assert total_calls(handlers) == 0

    def test_empty_is_unresolved(self, engine, reporter):
        assert engine.resolve_and_dispatch("").status == OutcomeStatus.UNRESOLVED
        assert len(reporter.messages) == 1


class TestHandlerFailure:
    """Handler exceptions are isolated."""

    def test_failure_reported_not_raised(self, engine, registry, reporter):
        def broken(context):
            raise ValueError("disk full")

        registry.bind_handler("vault", broken)
        outcome = engine.resolve_and_dispatch("/vault list")
        assert outcome.status == OutcomeStatus.EXECUTED
        assert not outcome.succeeded
        assert isinstance(outcome.error, HandlerExecutionError)
        assert len(reporter.messages) == 1
        assert "vault" in reporter.messages[0]
        assert "disk full" in reporter.messages[0]

    def test_engine_usable_after_failure(self, engine, registry, handlers):
        registry.bind_handler("vault", lambda context: 1 / 0)
        engine.resolve_and_dispatch("/vault")
        outcome = engine.resolve_and_dispatch("/git")
        assert outcome.succeeded
        assert len(handlers["git"].calls) == 1

    def test_failing_reporter_is_contained(self, registry, handlers):
        def reporter(message):
            raise RuntimeError("ui gone")

        engine = CommandEngine(registry, report_error=reporter)
        assert engine.resolve_and_dispatch("/zzzzqqq").status == OutcomeStatus.UNRESOLVED

    def test_error_stats(self, engine, registry):
        registry.bind_handler("vault", lambda context: 1 / 0)
        engine.resolve_and_dispatch("/vault")
        engine.resolve_and_dispatch("/zzzzqqq")
        engine.resolve_and_dispatch("/zzzzqqq")
        stats = engine.get_status()["errors"]
        assert stats == {
            ErrorCategory.HANDLER_FAILURE.name: 1,
            ErrorCategory.UNRESOLVED_COMMAND.name: 2,
        }


class TestRecordedEngineErrors:
    """Ambiguity and host-capability failures end up in engine.errors, not as exceptions."""

    def test_fuzzy_tie_with_warnings_as_errors(self, reporter):
        registry = CommandRegistry()
        for name in ("help", "todo"):
            registry.register(Command(name=name, description=name))
        registry.register_intents({"가나다": "help", "가나라": "todo"})
        engine = CommandEngine(registry, report_error=reporter)

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            outcome = engine.resolve_and_dispatch("/가나마")

        assert outcome.status == OutcomeStatus.UNRESOLVED
        recorded = [e for e in engine.errors.history if e.category == ErrorCategory.AMBIGUOUS_MATCH]
        assert len(recorded) == 1
        assert recorded[0].details == {"candidates": ["help", "todo"]}

    def test_typo_tie_with_warnings_as_errors(self, confirm):
        registry = CommandRegistry()
        registry.register(Command(name="git", description=""))
        registry.register(Command(name="gif", description=""))
        engine = CommandEngine(registry, confirm=confirm)

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            outcome = engine.resolve_and_dispatch("/gih")

        assert outcome.status == OutcomeStatus.SUGGESTIONS_OFFERED
        assert confirm.prompts == []
        assert engine.get_status()["errors"] == {ErrorCategory.AMBIGUOUS_MATCH.name: 1}

    def test_failing_confirm_recorded(self, registry, handlers, reporter):
        def confirm(prompt):
            raise RuntimeError("no terminal")

        engine = CommandEngine(registry, confirm=confirm, report_error=reporter)
        outcome = engine.resolve_and_dispatch("/gut status")

        assert outcome.status == OutcomeStatus.SUGGESTIONS_OFFERED
        assert handlers["git"].calls == []
        assert reporter.messages == []
        assert engine.get_status()["errors"] == {ErrorCategory.CONFIRMATION_FAILURE.name: 1}
        assert engine.errors.history[0].message == "no terminal"

    def test_duplicate_registration_recorded_and_raised(self, engine):
        with pytest.raises(DuplicateRegistrationError):
            engine.register(Command(name="svn", description="", aliases=["vcs"]))
        with pytest.raises(DuplicateRegistrationError):
            engine.register_intents({"도와줘": "todo"})

        stats = engine.get_status()["errors"]
        assert stats == {ErrorCategory.DUPLICATE_REGISTRATION.name: 2}
        assert engine.errors.history[0].details == {"key": "vcs", "existing": "git"}
        assert engine.registry.get_command("svn") is None


class TestAsyncEntryPoint:
    """Tests for aresolve_and_dispatch."""

    def test_async_handler(self, engine, registry):
        seen = []

        async def handler(context):
            await asyncio.sleep(0)
            seen.append(context.args)

        registry.bind_handler("todo", handler)
        outcome = asyncio.run(engine.aresolve_and_dispatch("/todo add 장보기"))
        assert outcome.succeeded
        assert seen == [["add", "장보기"]]

    def test_async_failure(self, engine, registry, reporter):
        async def handler(context):
            raise RuntimeError("timeout")

        registry.bind_handler("todo", handler)
        outcome = asyncio.run(engine.aresolve_and_dispatch("/todo"))
        assert isinstance(outcome.error, HandlerExecutionError)
        assert len(reporter.messages) == 1

    def test_async_unresolved(self, engine, handlers):
        outcome = asyncio.run(engine.aresolve_and_dispatch("/zzzzqqq"))
        assert outcome.status == OutcomeStatus.UNRESOLVED

    def test_sync_entry_point_runs_coroutine(self, engine, registry):
        seen = []

        async def handler(context):
            seen.append(context.args)

        registry.bind_handler("todo", handler)
        assert engine.resolve_and_dispatch("/todo list").succeeded
        assert seen == [["list"]]


class TestTurnsAndReload:
    """Turn ids, configuration and registry replacement."""

    def test_turn_id_per_call(self, engine):
        first = engine.resolve_and_dispatch("/git")
        second = engine.resolve_and_dispatch("/git")
        assert first.turn_id.startswith("turn_")
        assert first.turn_id != second.turn_id

    def test_handler_sees_turn_id(self, engine, registry):
        seen = []
        registry.bind_handler("git", lambda context: seen.append(get_turn_id()))
        outcome = engine.resolve_and_dispatch("/git")
        assert seen == [outcome.turn_id]

    def test_reload_swaps_registry(self, engine, handlers):
        replacement = CommandRegistry()
        replacement.register(Command(name="deploy", description="Deploy", aliases=("ship",)))
        engine.reload(replacement)
        assert engine.registry is replacement
        assert engine.resolve("/ship").command.name == "deploy"
        assert engine.resolve("/git").command is None
        assert engine.get_suggestions("/")[0].label == "/deploy"

    def test_custom_trigger(self, registry, handlers):
        engine = CommandEngine(registry, config=EngineConfig(trigger_chars="!"))
        assert engine.resolve_and_dispatch("!git").chosen_command == "git"
        assert engine.parse("!git status") == ("git", ["status"], "git status")

    def test_register_through_engine(self, engine):
        engine.register(Command(name="deploy", description="Deploy"))
        engine.register_intents({"배포해줘": "deploy"})
        assert engine.resolve("/배포해줘").command.name == "deploy"

    def test_suggestions_and_completions(self, engine):
        assert engine.get_suggestions("/vc")[0].label == "/git"
        assert engine.provide_completions("/model gem") == ["gemini-pro"]

    def test_create_engine_loads_catalog(self, catalog_path):
        engine = create_engine(EngineConfig(catalog_path=str(catalog_path)))
        status = engine.get_status()
        assert status["commands_loaded"] > 10
        assert status["intents_loaded"] > 50


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
