"""Run analysis tasks against a generation backend.

An `Orchestrator` is stateless across runs. Each call to `run()` returns a
fresh `AnalysisRun` that owns everything one run mutates: task states, the
active-process set, the result aggregate, decode diagnostics and errors.
Iterating the run drives it, one backend call at a time, and yields a
`TaskUpdate` on every task transition so callers can render progress.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Set, Union
from uuid import uuid4

from textlens.core.exceptions import BackendError, EmptyInputError, NoTasksEnabledError
from textlens.core.interfaces import GenerationBackend
from textlens.core.models import (
    RESULT_FIELDS,
    AnalysisConfig,
    AnalysisResult,
    GenerationOptions,
    TaskKind,
    TaskState,
)
from textlens.decoding.outcome import DecodeOutcome
from textlens.decoding.records import decode_task_reply
from textlens.decoding.sections import decode_section_outcomes
from textlens.prompts.builder import build_combined_prompt, build_prompt
from textlens.utils.logging import get_logger

logger = get_logger(__name__)

GenerateFn = Callable[[str, GenerationOptions], str]
BackendLike = Union[GenerationBackend, GenerateFn]


class AnalysisMode(str, Enum):
    """How tasks are dispatched to the backend."""
    PER_TASK = "per_task"
    COMBINED = "combined"


class FailurePolicy(str, Enum):
    """What a backend failure does to the rest of the run."""
    FAIL_FAST = "fail_fast"
    FAIL_SOFT = "fail_soft"


_ALLOWED_TRANSITIONS = {
    TaskState.PENDING: {TaskState.RUNNING},
    TaskState.RUNNING: {TaskState.SUCCEEDED, TaskState.FAILED},
    TaskState.SUCCEEDED: set(),
    TaskState.FAILED: set(),
}


@dataclass(frozen=True)
class TaskUpdate:
    """One task transition, with a snapshot of the aggregate at that moment."""

    task: TaskKind
    state: TaskState
    result: AnalysisResult
    degraded: bool = False
    error: Optional[BackendError] = None


class AnalysisRun:
    """State and execution of a single analysis run.

    Usage:
        run = orchestrator.run(text, config)
        for update in run:
            print(update.task.value, update.state.value)
        print(run.result)

    A run can only be iterated once. Under `FailurePolicy.FAIL_FAST` the
    iteration raises the `BackendError` right after yielding the `FAILED`
    update; the tasks that already succeeded keep their fields in `result`.
    """

    def __init__(
        self,
        *,
        text: str,
        config: AnalysisConfig,
        generate: GenerateFn,
        options: GenerationOptions,
        mode: AnalysisMode,
        policy: FailurePolicy,
    ):
        self.id = uuid4().hex[:12]
        self.text = text
        self.config = config
        self.options = options
        self.mode = mode
        self.policy = policy
        self.tasks: List[TaskKind] = config.ordered_tasks
        self.states: Dict[TaskKind, TaskState] = {task: TaskState.PENDING for task in self.tasks}
        self.active: Set[TaskKind] = set()
        self.result = AnalysisResult()
        self.degraded: Dict[TaskKind, str] = {}
        self.errors: Dict[TaskKind, BackendError] = {}
        self.backend_calls = 0
        self._generate = generate
        self._started = False
        self._finished = False

    # -------------------------------------------------------------------------
    # Summary properties
    # -------------------------------------------------------------------------

    @property
    def succeeded(self) -> List[TaskKind]:
        return [t for t in self.tasks if self.states[t] is TaskState.SUCCEEDED]

    @property
    def failed(self) -> List[TaskKind]:
        return [t for t in self.tasks if self.states[t] is TaskState.FAILED]

    @property
    def status(self) -> str:
        """pending | running | succeeded | partial | failed"""
        if not self._started:
            return "pending"
        if not self._finished:
            return "running"
        if not self.failed and all(self.states[t] is TaskState.SUCCEEDED for t in self.tasks):
            return "succeeded"
        return "partial" if self.succeeded else "failed"

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def __iter__(self) -> Iterator[TaskUpdate]:
        if self._started:
            raise RuntimeError(f"Analysis run {self.id} has already been started")
        self._started = True
        logger.info(
            "Starting analysis run",
            extra={
                "run_id": self.id,
                "tasks": [t.value for t in self.tasks],
                "mode": self.mode.value,
                "policy": self.policy.value,
            },
        )
        if self.mode is AnalysisMode.COMBINED:
            yield from self._run_combined()
        else:
            yield from self._run_per_task()
        self._finished = True
        logger.info(
            "Analysis run finished",
            extra={"run_id": self.id, "status": self.status, "backend_calls": self.backend_calls},
        )

    def _run_per_task(self) -> Iterator[TaskUpdate]:
        for task in self.tasks:
            yield self._start(task)
            prompt = build_prompt(task, self.config, self.text)
            try:
                reply = self._call_backend(prompt)
            except BackendError as exc:
                yield self._fail(task, exc)
                if self.policy is FailurePolicy.FAIL_FAST:
                    self._abort(exc)
                    raise exc
                continue
            outcome = decode_task_reply(task, reply)
            yield self._succeed(task, outcome)

    def _run_combined(self) -> Iterator[TaskUpdate]:
        # All enabled tasks share one call, so they move through every state together.
        for task in self.tasks:
            self._transition(task, TaskState.RUNNING)
            self.active.add(task)
        for task in self.tasks:
            yield TaskUpdate(task=task, state=TaskState.RUNNING, result=self._snapshot())

        prompt = build_combined_prompt(self.config, self.text)
        try:
            reply = self._call_backend(prompt)
        except BackendError as exc:
            updates = [self._fail(task, exc) for task in self.tasks]
            yield from updates
            if self.policy is FailurePolicy.FAIL_FAST:
                self._abort(exc)
                raise exc
            return

        outcomes = decode_section_outcomes(reply)
        for task in self.tasks:
            self._merge(task, outcomes[task])
        updates = [self._complete(task, outcomes[task]) for task in self.tasks]
        yield from updates

    def _call_backend(self, prompt: str) -> str:
        self.backend_calls += 1
        try:
            reply = self._generate(prompt, self.options)
        except BackendError:
            raise
        except Exception as exc:
            raise BackendError(f"Generation backend failed: {exc}") from exc
        if not isinstance(reply, str) or not reply.strip():
            raise BackendError("Generation backend returned an empty reply")
        return reply

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _transition(self, task: TaskKind, state: TaskState) -> None:
        current = self.states[task]
        if state not in _ALLOWED_TRANSITIONS[current]:
            raise RuntimeError(f"Illegal task transition {task.value}: {current.value} -> {state.value}")
        self.states[task] = state
        logger.debug(
            "Task transition",
            extra={"run_id": self.id, "task": task.value, "state": state.value},
        )

    def _snapshot(self) -> AnalysisResult:
        return self.result.model_copy(deep=True)

    def _start(self, task: TaskKind) -> TaskUpdate:
        self._transition(task, TaskState.RUNNING)
        self.active.add(task)
        return TaskUpdate(task=task, state=TaskState.RUNNING, result=self._snapshot())

    def _merge(self, task: TaskKind, outcome: DecodeOutcome) -> None:
        setattr(self.result, RESULT_FIELDS[task], outcome.value)
        if outcome.degraded:
            self.degraded[task] = outcome.reason or "unknown"
            logger.warning(
                "Reply decoding degraded to fallback",
                extra={"run_id": self.id, "task": task.value, "reason": outcome.reason},
            )

    def _complete(self, task: TaskKind, outcome: DecodeOutcome) -> TaskUpdate:
        self._transition(task, TaskState.SUCCEEDED)
        self.active.discard(task)
        return TaskUpdate(
            task=task,
            state=TaskState.SUCCEEDED,
            result=self._snapshot(),
            degraded=outcome.degraded,
        )

    def _succeed(self, task: TaskKind, outcome: DecodeOutcome) -> TaskUpdate:
        self._merge(task, outcome)
        return self._complete(task, outcome)

    def _fail(self, task: TaskKind, exc: BackendError) -> TaskUpdate:
        self._transition(task, TaskState.FAILED)
        self.active.discard(task)
        self.errors[task] = exc
        context = dict(exc.context or {})
        context.setdefault("task", task.value)
        context["run_id"] = self.id
        exc.context = context
        if self.policy is FailurePolicy.FAIL_SOFT:
            logger.warning(
                "Task failed; continuing",
                extra={"run_id": self.id, "task": task.value, "error": exc.message},
            )
        return TaskUpdate(task=task, state=TaskState.FAILED, result=self._snapshot(), error=exc)

    def _abort(self, exc: BackendError) -> None:
        self._finished = True
        pending = [t.value for t in self.tasks if self.states[t] is TaskState.PENDING]
        logger.error(
            "Backend call failed; aborting run",
            extra={"run_id": self.id, "error": exc.message, "skipped": pending},
        )


class Orchestrator:
    """Dispatch enabled tasks to a generation backend and decode the replies."""

    def __init__(
        self,
        backend: BackendLike,
        *,
        options: Optional[GenerationOptions] = None,
        mode: AnalysisMode = AnalysisMode.PER_TASK,
        policy: FailurePolicy = FailurePolicy.FAIL_FAST,
    ):
        if isinstance(backend, GenerationBackend):
            self._generate: GenerateFn = backend.generate
        elif callable(backend):
            self._generate = backend
        else:
            raise TypeError(f"Unsupported backend: {backend!r}")
        self.options = options or GenerationOptions()
        self.mode = AnalysisMode(mode)
        self.policy = FailurePolicy(policy)

    def run(self, text: str, config: AnalysisConfig) -> AnalysisRun:
        """Validate inputs and return a new, not yet started run.

        Raises EmptyInputError / NoTasksEnabledError immediately, before any
        backend call.
        """
        if text is None or not text.strip():
            raise EmptyInputError("Input text is empty")
        if not config.enabled_tasks:
            raise NoTasksEnabledError("No analysis tasks are enabled")
        return AnalysisRun(
            text=text,
            config=config,
            generate=self._generate,
            options=self.options,
            mode=self.mode,
            policy=self.policy,
        )

    def analyze(self, text: str, config: AnalysisConfig) -> AnalysisRun:
        """Run to completion and return the finished run."""
        run = self.run(text, config)
        for _ in run:
            pass
        return run
