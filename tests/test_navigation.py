from flowbot.engine.navigation import (
    Completion,
    FlowNavigator,
    NavigationPosition,
    Outcome,
    active_dot,
    group_for_sub_step_indicator,
)
from flowbot.models.flow import Module, NavigationTarget


class FakeController:
    def __init__(self, screens=2, allowed=True):
        self.screens = screens
        self.allowed = allowed
        self.index = 0
        self.previous_calls = 0

    def can_advance(self):
        return self.allowed

    def handle_next(self):
        if self.index < self.screens - 1:
            self.index += 1
            return False
        return True

    def handle_previous(self):
        self.previous_calls += 1


def test_end_to_end_validator_then_sub_steps_then_completion(flow_factory):
    flow = flow_factory(["contact-info"], ["a", "b"])
    nav = FlowNavigator(flow)
    valid = {"ok": False}
    nav.register_validator(0, lambda: valid["ok"])

    result = nav.advance()
    assert result.outcome == Outcome.BLOCKED
    assert nav.position.as_tuple() == (0, 0)

    valid["ok"] = True
    assert nav.advance().position.as_tuple() == (1, 0)
    assert nav.advance().position.as_tuple() == (1, 1)

    result = nav.advance()
    assert result.outcome == Outcome.COMPLETED
    assert result.completion == Completion.EXIT
    assert nav.position.as_tuple() == (1, 1)


def test_completion_requests_feedback_when_enabled(flow_factory):
    nav = FlowNavigator(flow_factory(["only"], collect_feedback=True))
    result = nav.advance()
    assert result.outcome == Outcome.COMPLETED
    assert result.completion == Completion.FEEDBACK


def test_advance_visits_every_sub_step_in_order(flow_factory):
    nav = FlowNavigator(flow_factory(["m0", "m1", "m2"], ["next"]))
    visited = [nav.position.sub_step_index]
    for _ in range(2):
        visited.append(nav.advance().position.sub_step_index)
    assert visited == [0, 1, 2]
    assert nav.advance().position.as_tuple() == (1, 0)


def test_retreat_and_advance_are_inverse(flow_factory):
    flow = flow_factory(["a"], ["b", "c", "d"], ["e"], ["f", "g"])
    nav = FlowNavigator(flow)
    positions = [nav.position]
    while True:
        result = nav.advance()
        if result.outcome == Outcome.COMPLETED:
            break
        positions.append(result.position)

    for position in positions[1:-1]:
        nav.navigate_custom(NavigationTarget(step=position.step_index, sub_step=position.sub_step_index))
        nav.retreat()
        assert nav.advance().position == position
        nav.advance()
        assert nav.retreat().position == position


def test_boundaries_are_idempotent(flow_factory):
    nav = FlowNavigator(flow_factory(["a"], ["b", "c"]))
    result = nav.retreat()
    assert result.outcome == Outcome.NOOP
    assert nav.position.as_tuple() == (0, 0)

    nav.advance()
    nav.advance()
    assert nav.advance().position.as_tuple() == (1, 1)
    assert nav.advance().position.as_tuple() == (1, 1)


def test_retreat_lands_on_last_sub_step_of_previous_step(flow_factory):
    nav = FlowNavigator(flow_factory(["a", "b", "c"], ["d"]))
    nav.navigate_custom(NavigationTarget(step=1))
    assert nav.retreat().position.as_tuple() == (0, 2)


def test_empty_flow_is_noop(flow_factory):
    nav = FlowNavigator(flow_factory())
    assert nav.advance().outcome == Outcome.NOOP
    assert nav.retreat().outcome == Outcome.NOOP
    assert nav.current_module is None


def test_last_validator_registration_wins(flow_factory):
    nav = FlowNavigator(flow_factory(["a"], ["b"]))
    nav.register_validator(0, lambda: False)
    nav.register_validator(0, lambda: True)
    assert nav.advance().outcome == Outcome.MOVED


def test_navigate_custom_priority_flow_first(flow_factory):
    nav = FlowNavigator(flow_factory(["a"], ["b"]))
    result = nav.navigate_custom(NavigationTarget(flow="other", step=1, module="b"))
    assert result.outcome == Outcome.SWITCH_FLOW
    assert result.flow_slug == "other"
    assert nav.position.as_tuple() == (0, 0)


def test_navigate_custom_step_and_module(flow_factory):
    nav = FlowNavigator(flow_factory(["a"], ["b", "c"], ["c"]))
    assert nav.navigate_custom(NavigationTarget(step=1, sub_step=1)).position.as_tuple() == (1, 1)
    assert nav.navigate_custom(NavigationTarget(step=2)).position.as_tuple() == (2, 0)
    # первое совпадение по всем шагам
    assert nav.navigate_custom(NavigationTarget(module="c")).position.as_tuple() == (1, 1)


def test_navigate_custom_unresolved_targets_are_noop(flow_factory):
    nav = FlowNavigator(flow_factory(["a"], ["b"]))
    assert nav.navigate_custom(NavigationTarget(module="removed")).outcome == Outcome.NOOP
    assert nav.navigate_custom(NavigationTarget(step=7)).outcome == Outcome.NOOP
    assert nav.navigate_custom(NavigationTarget(step=1, sub_step=3)).outcome == Outcome.NOOP
    assert nav.navigate_custom(NavigationTarget()).outcome == Outcome.NOOP
    assert nav.position.as_tuple() == (0, 0)


def test_navigate_custom_skips_validators(flow_factory):
    nav = FlowNavigator(flow_factory(["a"], ["b"]))
    nav.register_validator(0, lambda: False)
    assert nav.navigate_custom(NavigationTarget(module="b")).position.as_tuple() == (1, 0)


def test_controller_gates_and_delegates(flow_factory):
    nav = FlowNavigator(flow_factory(["assessment"], ["next"]))
    controller = FakeController(screens=2, allowed=False)
    nav.register_controller(controller)

    assert nav.advance().outcome == Outcome.BLOCKED

    controller.allowed = True
    result = nav.advance()
    assert result.outcome == Outcome.DELEGATED
    assert result.moved
    assert nav.position.as_tuple() == (0, 0)

    result = nav.advance()
    assert result.outcome == Outcome.MOVED
    assert nav.position.as_tuple() == (1, 0)
    assert nav.controller is None


def test_validator_runs_before_controller(flow_factory):
    nav = FlowNavigator(flow_factory(["assessment"]))
    controller = FakeController(screens=3)
    nav.register_controller(controller)
    nav.register_validator(0, lambda: False)
    assert nav.advance().outcome == Outcome.BLOCKED
    assert controller.index == 0


def test_cleanups_run_on_position_change_only(flow_factory):
    nav = FlowNavigator(flow_factory(["a"], ["b"]))
    calls = []
    nav.register_cleanup(lambda: calls.append("a"))

    nav.navigate_custom(NavigationTarget(step=0))
    assert calls == []

    nav.advance()
    assert calls == ["a"]
    nav.retreat()
    assert calls == ["a"]


def test_restart_resets_everything(flow_factory):
    nav = FlowNavigator(flow_factory(["a"], ["b"]))
    calls = []
    nav.register_cleanup(lambda: calls.append(1))
    nav.advance()
    nav.register_validator(1, lambda: False)
    nav.register_controller(FakeController())
    nav.register_cleanup(lambda: calls.append(2))

    result = nav.restart()
    assert result.position == NavigationPosition(0, 0)
    assert calls == [1, 2]
    assert nav.controller is None
    nav.advance()
    assert nav.advance().outcome == Outcome.COMPLETED


def test_is_last_position(flow_factory):
    nav = FlowNavigator(flow_factory(["a"], ["b", "c"]))
    assert nav.is_first_position
    assert not nav.is_last_position
    nav.advance()
    assert nav.has_sub_steps
    assert not nav.is_last_position
    nav.advance()
    assert nav.is_last_position


def _multi_button(targets):
    return Module.model_validate({
        "id": "chooser",
        "name": "Chooser",
        "component": "MultibuttonModule",
        "templateOverrides": {
            "customButtons": [
                {"id": f"btn-{t}", "label": t, "targetModule": t} for t in targets
            ],
        },
    })


def test_indicator_groups_button_targets():
    modules = [
        _multi_button(["b", "c"]),
        Module(id="b", name="B"),
        Module(id="c", name="C"),
        Module(id="d", name="D"),
    ]
    dots = group_for_sub_step_indicator(modules)

    assert [tuple(m.id for m in dot.modules) for dot in dots] == [("chooser",), ("b", "c"), ("d",)]
    assert [dot.is_group for dot in dots] == [False, True, False]
    assert dots[1].title == "Custom Button Targets (2)"
    assert active_dot(modules, 0) == 0
    assert active_dot(modules, 2) == 1
    assert active_dot(modules, 3) == 2


def test_indicator_without_multi_button_is_one_dot_per_module():
    modules = [Module(id="a"), Module(id="b")]
    dots = group_for_sub_step_indicator(modules)
    assert len(dots) == 2
    assert not any(dot.is_group for dot in dots)


def test_multi_button_target_that_is_multi_button_is_not_grouped():
    other = _multi_button(["chooser"]).model_copy(update={"id": "second"})
    modules = [_multi_button(["second"]), other]
    dots = group_for_sub_step_indicator(modules)
    assert len(dots) == 2
    assert not any(dot.is_group for dot in dots)


def test_replace_flow_clamps_position_and_runs_cleanups(flow_factory):
    nav = FlowNavigator(flow_factory(["a"], ["b", "c"]))
    nav.advance()
    nav.advance()
    assert nav.position.as_tuple() == (1, 1)
    calls = []
    nav.register_cleanup(lambda: calls.append("c"))

    nav.replace_flow(flow_factory(["a"], ["b"]))
    assert nav.position.as_tuple() == (1, 0)
    assert calls == ["c"]
    assert nav.advance().outcome == Outcome.COMPLETED

    nav.replace_flow(flow_factory(["a"], ["b"], ["d"]))
    assert nav.position.as_tuple() == (1, 0)

    nav.replace_flow(flow_factory())
    assert nav.position.as_tuple() == (0, 0)
    assert nav.advance().outcome == Outcome.NOOP
