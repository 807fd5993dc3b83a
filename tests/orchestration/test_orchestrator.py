"""Tests for task orchestration."""

import pytest

from textlens.core.exceptions import BackendError, EmptyInputError, NoTasksEnabledError
from textlens.core.models import (
    AnalysisConfig,
    Entity,
    GenerationOptions,
    SentimentLabel,
    TaskKind,
    TaskState,
)
from textlens.orchestration import AnalysisMode, FailurePolicy, Orchestrator

SUMMARY_REPLY = "Alice works at Acme."
KEY_POINTS_REPLY = "- Alice works at Acme\n- She started in 2020"
SENTIMENT_REPLY = '{"label": "Positive", "score": 0.9, "justification": "Upbeat tone."}'
ENTITIES_REPLY = (
    '[{"text":"Alice","type":"person"},{"text":"Acme","type":"organization"},'
    '{"text":"2020","type":"date"}]'
)
QA_REPLY = '[{"question": "Where does Alice work?", "answer": "At Acme."}]'

ALL_REPLIES = [SUMMARY_REPLY, KEY_POINTS_REPLY, SENTIMENT_REPLY, ENTITIES_REPLY, QA_REPLY]


# -----------------------------------------------------------------------------
# Test: Pre-flight validation
# -----------------------------------------------------------------------------

class TestValidation:
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_empty_text_rejected_without_calls(self, make_backend, full_config, text):
        backend = make_backend(*ALL_REPLIES)

        with pytest.raises(EmptyInputError):
            Orchestrator(backend).run(text, full_config)

        assert backend.calls == []

    def test_no_tasks_rejected_without_calls(self, make_backend, sample_text):
        backend = make_backend(*ALL_REPLIES)
        config = AnalysisConfig(enabled_tasks=set())

        with pytest.raises(NoTasksEnabledError):
            Orchestrator(backend).run(sample_text, config)

        assert len(backend.calls) == 0

    def test_run_is_lazy_until_iterated(self, make_backend, sample_text, full_config):
        backend = make_backend(*ALL_REPLIES)

        run = Orchestrator(backend).run(sample_text, full_config)

        assert backend.calls == []
        assert run.status == "pending"
        assert all(state is TaskState.PENDING for state in run.states.values())


# -----------------------------------------------------------------------------
# Test: Per-task mode
# -----------------------------------------------------------------------------

class TestPerTaskMode:
    def test_one_call_per_task_in_enumeration_order(self, make_backend, sample_text, full_config):
        backend = make_backend(*ALL_REPLIES)

        run = Orchestrator(backend).analyze(sample_text, full_config)

        assert len(backend.calls) == 5
        assert run.backend_calls == 5
        assert "exactly 2 sentences" in backend.prompts[0]
        assert "exactly 3 key points" in backend.prompts[1]
        assert "sentiment" in backend.prompts[2]
        assert "named entities" in backend.prompts[3]
        assert "question and answer" in backend.prompts[4]

    def test_all_fields_populated(self, make_backend, sample_text, full_config):
        run = Orchestrator(make_backend(*ALL_REPLIES)).analyze(sample_text, full_config)

        assert run.status == "succeeded"
        assert run.result.summary == "Alice works at Acme."
        assert run.result.key_points == ["Alice works at Acme", "She started in 2020"]
        assert run.result.sentiment.label is SentimentLabel.POSITIVE
        assert run.result.sentiment.score == 0.9
        assert len(run.result.entities) == 3
        assert run.result.qa[0].answer == "At Acme."
        assert run.active == set()

    def test_entities_only_scenario(self, make_backend, sample_text):
        backend = make_backend(ENTITIES_REPLY)
        config = AnalysisConfig(enabled_tasks={TaskKind.ENTITIES})

        run = Orchestrator(backend).analyze(sample_text, config)

        assert len(backend.calls) == 1
        assert run.result.entities == [
            Entity(type="person", name="Alice"),
            Entity(type="organization", name="Acme"),
            Entity(type="date", name="2020"),
        ]
        assert run.result.summary is None
        assert run.result.sentiment is None

    def test_updates_stream_running_then_succeeded(self, make_backend, sample_text):
        config = AnalysisConfig(enabled_tasks={TaskKind.SUMMARY, TaskKind.QA})
        run = Orchestrator(make_backend(SUMMARY_REPLY, QA_REPLY)).run(sample_text, config)

        updates = list(run)

        assert [(u.task, u.state) for u in updates] == [
            (TaskKind.SUMMARY, TaskState.RUNNING),
            (TaskKind.SUMMARY, TaskState.SUCCEEDED),
            (TaskKind.QA, TaskState.RUNNING),
            (TaskKind.QA, TaskState.SUCCEEDED),
        ]
        # Snapshots grow monotonically.
        assert updates[0].result.summary is None
        assert updates[1].result.summary == SUMMARY_REPLY
        assert updates[1].result.qa is None
        assert updates[3].result.qa is not None

    def test_active_set_tracks_running_task(self, make_backend, sample_text):
        config = AnalysisConfig(enabled_tasks={TaskKind.SUMMARY, TaskKind.KEY_POINTS})
        run = Orchestrator(make_backend(SUMMARY_REPLY, KEY_POINTS_REPLY)).run(sample_text, config)
        seen = []

        for update in run:
            seen.append(set(run.active))

        assert seen == [{TaskKind.SUMMARY}, set(), {TaskKind.KEY_POINTS}, set()]

    def test_snapshots_are_copies(self, make_backend, sample_text):
        config = AnalysisConfig(enabled_tasks={TaskKind.KEY_POINTS})
        run = Orchestrator(make_backend(KEY_POINTS_REPLY)).run(sample_text, config)

        final = list(run)[-1]
        final.result.key_points.append("tampered")

        assert run.result.key_points == ["Alice works at Acme", "She started in 2020"]

    def test_decode_failure_is_not_task_failure(self, make_backend, sample_text):
        config = AnalysisConfig(enabled_tasks={TaskKind.SENTIMENT})

        run = Orchestrator(make_backend("not json")).analyze(sample_text, config)

        assert run.states[TaskKind.SENTIMENT] is TaskState.SUCCEEDED
        assert run.result.sentiment.label is SentimentLabel.NEUTRAL
        assert run.result.sentiment.score == 0.5
        assert run.result.sentiment.justification == "could not be determined"
        assert TaskKind.SENTIMENT in run.degraded

    def test_options_are_passed_to_backend(self, make_backend, sample_text):
        backend = make_backend(SUMMARY_REPLY)
        options = GenerationOptions(temperature=0.1, top_p=0.5, top_k=5, max_output_tokens=64)
        config = AnalysisConfig(enabled_tasks={TaskKind.SUMMARY})

        Orchestrator(backend, options=options).analyze(sample_text, config)

        assert backend.calls[0][1] == options

    def test_plain_function_backend(self, sample_text):
        def generate(prompt, options):
            return SUMMARY_REPLY

        config = AnalysisConfig(enabled_tasks={TaskKind.SUMMARY})
        run = Orchestrator(generate).analyze(sample_text, config)

        assert run.result.summary == SUMMARY_REPLY

    def test_run_can_only_be_iterated_once(self, make_backend, sample_text):
        config = AnalysisConfig(enabled_tasks={TaskKind.SUMMARY})
        run = Orchestrator(make_backend(SUMMARY_REPLY)).run(sample_text, config)
        list(run)

        with pytest.raises(RuntimeError):
            list(run)


# -----------------------------------------------------------------------------
# Test: Failure policies
# -----------------------------------------------------------------------------

class TestFailFast:
    def test_second_task_failure_aborts_run(self, make_backend, sample_text, full_config):
        backend = make_backend(SUMMARY_REPLY, BackendError("HTTP 500"), *ALL_REPLIES[2:])
        run = Orchestrator(backend).run(sample_text, full_config)
        updates = []

        with pytest.raises(BackendError) as exc_info:
            for update in run:
                updates.append(update)

        assert exc_info.value.message == "HTTP 500"
        assert exc_info.value.context["task"] == TaskKind.KEY_POINTS.value
        assert len(backend.calls) == 2
        assert run.result.summary == SUMMARY_REPLY
        assert run.states[TaskKind.SUMMARY] is TaskState.SUCCEEDED
        assert run.states[TaskKind.KEY_POINTS] is TaskState.FAILED
        for task in (TaskKind.SENTIMENT, TaskKind.ENTITIES, TaskKind.QA):
            assert run.states[task] is TaskState.PENDING
            assert all(u.task is not task for u in updates)
        assert updates[-1].state is TaskState.FAILED
        assert updates[-1].error is exc_info.value
        assert run.active == set()
        assert run.status == "partial"

    def test_analyze_reraises(self, make_backend, sample_text, full_config):
        backend = make_backend(BackendError("down"))

        with pytest.raises(BackendError):
            Orchestrator(backend).analyze(sample_text, full_config)

    def test_empty_reply_is_backend_error(self, make_backend, sample_text):
        config = AnalysisConfig(enabled_tasks={TaskKind.SUMMARY})
        run = Orchestrator(make_backend("   ")).run(sample_text, config)

        with pytest.raises(BackendError, match="empty reply"):
            list(run)

        assert run.states[TaskKind.SUMMARY] is TaskState.FAILED
        assert run.status == "failed"

    def test_unexpected_backend_exception_is_wrapped(self, make_backend, sample_text):
        config = AnalysisConfig(enabled_tasks={TaskKind.SUMMARY})
        run = Orchestrator(make_backend(ConnectionError("reset"))).run(sample_text, config)

        with pytest.raises(BackendError) as exc_info:
            list(run)

        assert isinstance(exc_info.value.__cause__, ConnectionError)


class TestFailSoft:
    def test_remaining_tasks_continue(self, make_backend, sample_text, full_config):
        backend = make_backend(SUMMARY_REPLY, BackendError("HTTP 500"), *ALL_REPLIES[2:])
        orchestrator = Orchestrator(backend, policy=FailurePolicy.FAIL_SOFT)

        run = orchestrator.analyze(sample_text, full_config)

        assert len(backend.calls) == 5
        assert run.failed == [TaskKind.KEY_POINTS]
        assert run.result.key_points is None
        assert run.result.qa is not None
        assert run.errors[TaskKind.KEY_POINTS].message == "HTTP 500"
        assert run.status == "partial"


# -----------------------------------------------------------------------------
# Test: Combined mode
# -----------------------------------------------------------------------------

COMBINED_REPLY = """Summary:
Short text.

Key Points:
- One
- Two
"""


class TestCombinedMode:
    def test_single_call_decodes_sections(self, make_backend, sample_text, full_config):
        backend = make_backend(COMBINED_REPLY)
        orchestrator = Orchestrator(backend, mode=AnalysisMode.COMBINED)

        run = orchestrator.analyze(sample_text, full_config)

        assert len(backend.calls) == 1
        assert "Questions & Answers:" in backend.prompts[0]
        assert run.result.summary == "Short text."
        assert run.result.key_points == ["One", "Two"]
        assert run.result.sentiment.label is SentimentLabel.NEUTRAL
        assert run.result.entities == []
        assert run.result.qa == []
        assert all(state is TaskState.SUCCEEDED for state in run.states.values())
        assert set(run.degraded) == {TaskKind.SENTIMENT, TaskKind.ENTITIES, TaskKind.QA}

    def test_tasks_transition_together(self, make_backend, sample_text):
        config = AnalysisConfig(enabled_tasks={TaskKind.SUMMARY, TaskKind.KEY_POINTS})
        run = Orchestrator(make_backend(COMBINED_REPLY), mode=AnalysisMode.COMBINED).run(
            sample_text, config
        )

        updates = list(run)

        assert [(u.task, u.state) for u in updates] == [
            (TaskKind.SUMMARY, TaskState.RUNNING),
            (TaskKind.KEY_POINTS, TaskState.RUNNING),
            (TaskKind.SUMMARY, TaskState.SUCCEEDED),
            (TaskKind.KEY_POINTS, TaskState.SUCCEEDED),
        ]
        # Both fields are already merged by the first terminal update.
        assert updates[2].result.key_points == ["One", "Two"]

    def test_only_enabled_fields_are_merged(self, make_backend, sample_text):
        config = AnalysisConfig(enabled_tasks={TaskKind.SUMMARY})

        run = Orchestrator(make_backend(COMBINED_REPLY), mode="combined").analyze(sample_text, config)

        assert run.result.summary == "Short text."
        assert run.result.key_points is None

    def test_failure_fails_every_task(self, make_backend, sample_text, full_config):
        orchestrator = Orchestrator(
            make_backend(BackendError("quota")),
            mode=AnalysisMode.COMBINED,
            policy=FailurePolicy.FAIL_SOFT,
        )

        run = orchestrator.analyze(sample_text, full_config)

        assert run.failed == list(TaskKind)
        assert run.status == "failed"
        assert run.result.summary is None


# -----------------------------------------------------------------------------
# Test: Run isolation
# -----------------------------------------------------------------------------

def test_runs_do_not_share_state(make_backend, sample_text):
    config = AnalysisConfig(enabled_tasks={TaskKind.SUMMARY})
    orchestrator = Orchestrator(make_backend("First run.", "Second run."))

    first = orchestrator.run(sample_text, config)
    second = orchestrator.run(sample_text, config)
    first_updates = iter(first)
    next(first_updates)  # first run is mid-flight
    list(second)
    list(first_updates)

    assert second.result.summary == "First run."
    assert first.result.summary == "Second run."
    assert first.result is not second.result
    assert first.id != second.id
