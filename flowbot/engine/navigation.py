import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple
from flowbot.models.flow import ComponentKind, Flow, Module, NavigationTarget, Step

logger = logging.getLogger(__name__)

Validator = Callable[[], bool]


class Outcome(str, Enum):
    MOVED = "moved"
    BLOCKED = "blocked"
    DELEGATED = "delegated"
    COMPLETED = "completed"
    SWITCH_FLOW = "switch_flow"
    NOOP = "noop"


class Completion(str, Enum):
    FEEDBACK = "feedback"
    EXIT = "exit"


@dataclass(frozen=True)
class NavigationPosition:
    step_index: int = 0
    sub_step_index: int = 0

    def as_tuple(self) -> Tuple[int, int]:
        return self.step_index, self.sub_step_index


START = NavigationPosition(0, 0)


@dataclass(frozen=True)
class NavigationResult:
    outcome: Outcome
    position: NavigationPosition
    flow_slug: Optional[str] = None
    completion: Optional[Completion] = None

    @property
    def moved(self) -> bool:
        return self.outcome in (Outcome.MOVED, Outcome.DELEGATED)


class SubEngineController(Protocol):
    """Контракт самоуправляемого модуля (оценка) с навигатором."""

    def can_advance(self) -> bool: ...

    def handle_next(self) -> bool: ...

    def handle_previous(self) -> None: ...


@dataclass(frozen=True)
class IndicatorDot:
    """Точка индикатора подшагов: один модуль или группа целей кнопок."""
    modules: Tuple[Module, ...]
    is_group: bool = False

    def contains(self, module_index: int, step_modules: Sequence[Module]) -> bool:
        if not 0 <= module_index < len(step_modules):
            return False
        current = step_modules[module_index]
        return any(module is current for module in self.modules)

    @property
    def title(self) -> str:
        if self.is_group:
            return f"Custom Button Targets ({len(self.modules)})"
        return self.modules[0].name


def _is_button_target(module: Module, step_modules: Sequence[Module]) -> bool:
    for sibling in step_modules:
        if sibling.kind != ComponentKind.MULTI_BUTTON or not sibling.template_overrides:
            continue
        for button in sibling.template_overrides.custom_buttons or []:
            if button.target_module == module.id:
                return True
    return False


def group_for_sub_step_indicator(step_modules: Sequence[Module]) -> List[IndicatorDot]:
    """Группировка модулей, доступных только через кастомные кнопки."""
    dots: List[IndicatorDot] = []
    pending: List[Module] = []
    for module in step_modules:
        if module.kind != ComponentKind.MULTI_BUTTON and _is_button_target(module, step_modules):
            pending.append(module)
            continue
        if pending:
            dots.append(IndicatorDot(tuple(pending), is_group=True))
            pending = []
        dots.append(IndicatorDot((module,)))
    if pending:
        dots.append(IndicatorDot(tuple(pending), is_group=True))
    return dots


def active_dot(step_modules: Sequence[Module], sub_step_index: int) -> Optional[int]:
    for index, dot in enumerate(group_for_sub_step_indicator(step_modules)):
        if dot.contains(sub_step_index, step_modules):
            return index
    return None


class FlowNavigator:
    """Машина состояний шагов и подшагов флоу."""

    def __init__(self, flow: Flow):
        self.flow = flow
        self._position = START
        self._validators: Dict[int, Validator] = {}
        self._controller: Optional[SubEngineController] = None
        self._cleanups: List[Callable[[], None]] = []

    @property
    def position(self) -> NavigationPosition:
        return self._position

    @property
    def steps(self) -> List[Step]:
        return self.flow.steps

    @property
    def current_step(self) -> Optional[Step]:
        index = self._position.step_index
        return self.steps[index] if 0 <= index < len(self.steps) else None

    @property
    def current_module(self) -> Optional[Module]:
        return self.flow.module_at(*self._position.as_tuple())

    @property
    def has_sub_steps(self) -> bool:
        step = self.current_step
        return bool(step) and len(step.modules) > 1

    @property
    def is_first_position(self) -> bool:
        return self._position == START

    @property
    def is_last_position(self) -> bool:
        if not self.steps:
            return True
        step = self.current_step
        last_sub_step = max(len(step.modules) - 1, 0) if step else 0
        return (self._position.step_index == len(self.steps) - 1
                and self._position.sub_step_index >= last_sub_step)

    @property
    def controller(self) -> Optional[SubEngineController]:
        return self._controller

    def register_validator(self, step_index: int, validator: Validator) -> None:
        self._validators[step_index] = validator

    def register_controller(self, controller: Optional[SubEngineController]) -> None:
        self._controller = controller

    def register_cleanup(self, cleanup: Callable[[], None]) -> None:
        self._cleanups.append(cleanup)

    def advance(self) -> NavigationResult:
        if not self.steps:
            return NavigationResult(Outcome.NOOP, self._position)

        validator = self._validators.get(self._position.step_index)
        if validator and not validator():
            logger.info(f"Validation blocked advance at {self._position.as_tuple()} in flow {self.flow.slug}")
            return NavigationResult(Outcome.BLOCKED, self._position)

        if self._controller is not None:
            if not self._controller.can_advance():
                return NavigationResult(Outcome.BLOCKED, self._position)
            if not self._controller.handle_next():
                return NavigationResult(Outcome.DELEGATED, self._position)

        step_index, sub_step_index = self._position.as_tuple()
        modules = self.steps[step_index].modules
        if len(modules) > 1 and sub_step_index < len(modules) - 1:
            return self._move_to(NavigationPosition(step_index, sub_step_index + 1))
        if step_index < len(self.steps) - 1:
            return self._move_to(NavigationPosition(step_index + 1, 0))

        completion = Completion.FEEDBACK if self.flow.collect_feedback else Completion.EXIT
        logger.info(f"Flow {self.flow.slug} completed, completion={completion.value}")
        return NavigationResult(Outcome.COMPLETED, self._position, completion=completion)

    def retreat(self) -> NavigationResult:
        step_index, sub_step_index = self._position.as_tuple()
        if self.has_sub_steps and sub_step_index > 0:
            return self._move_to(NavigationPosition(step_index, sub_step_index - 1))
        if step_index > 0:
            previous_modules = self.steps[step_index - 1].modules
            last = len(previous_modules) - 1 if len(previous_modules) > 1 else 0
            return self._move_to(NavigationPosition(step_index - 1, last))
        return NavigationResult(Outcome.NOOP, self._position)

    def navigate_custom(self, target: NavigationTarget) -> NavigationResult:
        if target.flow:
            logger.info(f"Custom navigation from flow {self.flow.slug} to flow {target.flow}")
            return NavigationResult(Outcome.SWITCH_FLOW, self._position, flow_slug=target.flow)

        if target.step is not None:
            sub_step = target.sub_step or 0
            if self.flow.module_at(target.step, sub_step) is None and not self._is_empty_step(target.step, sub_step):
                logger.warning(f"Custom navigation target step={target.step} sub_step={sub_step} is outside flow {self.flow.slug}")
                return NavigationResult(Outcome.NOOP, self._position)
            return self._move_to(NavigationPosition(target.step, sub_step))

        if target.module:
            found = self.flow.find_module(target.module)
            if found is None:
                logger.warning(f"Custom navigation target module {target.module} not found in flow {self.flow.slug}")
                return NavigationResult(Outcome.NOOP, self._position)
            return self._move_to(NavigationPosition(*found))

        return NavigationResult(Outcome.NOOP, self._position)

    def restart(self) -> NavigationResult:
        self._run_cleanups()
        self._validators.clear()
        self._controller = None
        self._position = START
        return NavigationResult(Outcome.MOVED, self._position)

    def close(self) -> None:
        self._run_cleanups()
        self._controller = None

    def replace_flow(self, flow: Flow) -> NavigationResult:
        """Подмена флоу с прижатием позиции к новому списку шагов."""
        self.flow = flow
        step_index, sub_step_index = self._position.as_tuple()
        if not self.steps:
            return self._move_to(START)
        step_index = min(step_index, len(self.steps) - 1)
        sub_step_index = min(sub_step_index, max(len(self.steps[step_index].modules) - 1, 0))
        return self._move_to(NavigationPosition(step_index, sub_step_index))

    def _is_empty_step(self, step_index: int, sub_step_index: int) -> bool:
        return (0 <= step_index < len(self.steps)
                and not self.steps[step_index].modules
                and sub_step_index == 0)

    def _move_to(self, position: NavigationPosition) -> NavigationResult:
        if position != self._position:
            self._run_cleanups()
            self._controller = None
            logger.debug(f"Flow {self.flow.slug}: {self._position.as_tuple()} -> {position.as_tuple()}")
            self._position = position
        return NavigationResult(Outcome.MOVED, self._position)

    def _run_cleanups(self) -> None:
        cleanups, self._cleanups = self._cleanups, []
        for cleanup in cleanups:
            cleanup()
