"""Tests for EmergencyCommands - cross-registry command handling."""
import pytest

from rapidresponse.shared.models import (
    AlertSeverity,
    EmergencyKind,
    EmergencyStatus,
    TimerKind,
)
from rapidresponse.services.command_layer import (
    EmergencyCommands,
    EmergencyContext,
    TimerRole,
    TimerSettings,
    checklist_for,
)
from rapidresponse.services.timer_registry import TickScheduler


class FakeHandle:
    def __init__(self, callback, args):
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(callback, args)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def fire(self, times=1):
        for _ in range(times):
            for handle in self.pending:
                handle.cancelled = True
                handle.callback(*handle.args)


@pytest.fixture
def context():
    return EmergencyContext.create()


@pytest.fixture
def commands(context):
    return EmergencyCommands(context, settings=TimerSettings(auto_start_timers=False))


@pytest.fixture
def loop():
    return FakeLoop()


@pytest.fixture
def scheduled_commands(context, loop):
    settings = TimerSettings(
        cpr_interval_seconds=4,
        medication_interval_seconds=6,
        alert_before_interval_seconds=1,
        auto_start_timers=True,
    )
    scheduler = TickScheduler(context.timers, loop=loop)
    return EmergencyCommands(context, settings=settings, scheduler=scheduler)


class TestRouteAction:
    def test_creates_emergency_then_records(self, commands, context):
        emergency = commands.route_action(EmergencyKind.STROKE, "Check Glucose")

        assert emergency.status == EmergencyStatus.ACTIVE
        assert emergency.required_actions == checklist_for(EmergencyKind.STROKE)
        assert emergency.completed_actions == ["Check Glucose"]
        assert len(context.sessions.list_active()) == 1

    def test_routes_into_existing_active_emergency(self, commands, context):
        first = commands.route_action(EmergencyKind.STROKE, "Check Glucose")
        second = commands.route_action(EmergencyKind.STROKE, "STAT CT Head")

        assert second.emergency_id == first.emergency_id
        assert second.completed_actions == ["Check Glucose", "STAT CT Head"]
        assert len(context.sessions.list_active()) == 1

    def test_new_emergency_after_resolve(self, commands):
        first = commands.route_action(EmergencyKind.RAPID_RESPONSE, "Call RRT")
        commands.resolve_emergency(first.emergency_id)

        second = commands.route_action(EmergencyKind.RAPID_RESPONSE, "Call RRT")

        assert second.emergency_id != first.emergency_id

    def test_kinds_are_routed_separately(self, commands, context):
        commands.route_action(EmergencyKind.STROKE, "Check Glucose")
        commands.route_action(EmergencyKind.CARDIAC_ARREST, "Call Code Blue")

        kinds = [e.kind for e in context.sessions.list_active()]
        assert kinds == [EmergencyKind.STROKE, EmergencyKind.CARDIAC_ARREST]

    def test_complete_action_unknown_id_is_noop(self, commands):
        assert commands.complete_action("emergency_missing", "Start CPR") is None

    def test_mark_action_complete_routes(self, commands):
        emergency = commands.mark_action_complete(
            EmergencyKind.CARDIAC_ARREST, "Get Crash Cart/AED"
        )
        assert emergency.completed_actions == ["Get Crash Cart/AED"]


class TestBeginResponse:
    def test_auto_start_code_timer(self, context):
        commands = EmergencyCommands(context, settings=TimerSettings(auto_start_timers=True))

        emergency = commands.begin_response(EmergencyKind.CARDIAC_ARREST)

        timers = commands.timers_for(emergency.emergency_id)
        assert set(timers) == {"code"}
        code_timer = context.timers.get(timers["code"])
        assert code_timer.running is True
        assert code_timer.kind == TimerKind.GENERIC
        assert code_timer.label == TimerRole.CODE.value

    def test_no_timer_without_auto_start(self, commands, context):
        emergency = commands.begin_response(EmergencyKind.CARDIAC_ARREST)

        assert commands.timers_for(emergency.emergency_id) == {}
        assert context.timers.list_timers() == []

    def test_begin_twice_joins_existing(self, context):
        commands = EmergencyCommands(context, settings=TimerSettings(auto_start_timers=True))

        first = commands.begin_response(EmergencyKind.STROKE, location="ED 3")
        second = commands.begin_response(EmergencyKind.STROKE)

        assert second.emergency_id == first.emergency_id
        assert len(context.timers.list_timers()) == 1
        assert second.completed_actions == []

    def test_rejoin_restarts_stopped_code_timer(self, context):
        commands = EmergencyCommands(context, settings=TimerSettings(auto_start_timers=True))
        emergency = commands.begin_response(EmergencyKind.CARDIAC_ARREST)
        first_id = commands.timers_for(emergency.emergency_id)["code"]
        commands.stop_timer(first_id)

        rejoined = commands.begin_response(EmergencyKind.CARDIAC_ARREST)

        code_id = commands.timers_for(rejoined.emergency_id)["code"]
        assert rejoined.emergency_id == emergency.emergency_id
        assert code_id != first_id
        assert context.timers.get(code_id).running is True
        assert context.timers.get(first_id).running is False


class TestStartCpr:
    def test_first_press_creates_emergency_and_cycle_timer(self, commands, context):
        emergency, timer = commands.start_cpr()

        assert emergency.kind == EmergencyKind.CARDIAC_ARREST
        assert emergency.completed_actions == ["Start CPR"]
        assert timer.kind == TimerKind.CYCLE_COUNTED
        assert timer.cycle_count == 0
        assert commands.timers_for(emergency.emergency_id)["cpr"] == timer.timer_id

    def test_later_presses_count_cycles(self, commands):
        emergency, timer = commands.start_cpr()
        commands.start_cpr()
        again, counted = commands.start_cpr()

        assert again.emergency_id == emergency.emergency_id
        assert counted.timer_id == timer.timer_id
        assert counted.cycle_count == 2
        assert again.completed_actions == ["Start CPR"]

    def test_stopped_cpr_timer_replaced_by_fresh_one(self, commands):
        _, first = commands.start_cpr()
        commands.stop_timer(first.timer_id)

        _, second = commands.start_cpr()

        assert second.timer_id != first.timer_id
        assert second.cycle_count == 0

    def test_cpr_into_existing_code(self, commands):
        emergency = commands.route_action(EmergencyKind.CARDIAC_ARREST, "Call Code Blue")

        routed, _ = commands.start_cpr()

        assert routed.emergency_id == emergency.emergency_id
        assert routed.completed_actions == ["Call Code Blue", "Start CPR"]


class TestMedication:
    def test_first_dose_starts_timer(self, commands):
        emergency, timer = commands.give_medication()

        assert "Epinephrine 1mg" in emergency.completed_actions
        assert timer.kind == TimerKind.GENERIC
        assert commands.timers_for(emergency.emergency_id)["medication"] == timer.timer_id

    def test_repeat_dose_resets_timer(self, commands, context):
        _, timer = commands.give_medication()
        context.timers.advance(timer.timer_id, 150000)

        _, again = commands.give_medication()

        assert again.timer_id == timer.timer_id
        assert again.elapsed_ms == 0
        assert again.running is True


class TestTimerCommands:
    def test_advance_stop_reset(self, commands):
        _, timer = commands.start_cpr()

        commands.advance_timer(timer.timer_id, 3000)
        stopped = commands.stop_timer(timer.timer_id)
        reset = commands.reset_timer(timer.timer_id)

        assert stopped.elapsed_ms == 3000
        assert stopped.running is False
        assert reset.elapsed_ms == 0
        assert reset.running is False

    def test_unknown_timer_commands_are_noops(self, commands):
        assert commands.advance_timer("timer_missing", 1000) is None
        assert commands.stop_timer("timer_missing") is None
        assert commands.reset_timer("timer_missing") is None


class TestLifecycle:
    def test_resolve_stops_associated_timers(self, scheduled_commands, context, loop):
        emergency = scheduled_commands.begin_response(EmergencyKind.CARDIAC_ARREST)
        scheduled_commands.start_cpr()
        loop.fire(times=2)

        scheduled_commands.resolve_emergency(emergency.emergency_id)
        loop.fire(times=2)

        for timer_id in scheduled_commands.timers_for(emergency.emergency_id).values():
            timer = context.timers.get(timer_id)
            assert timer.running is False
            assert timer.elapsed_ms == 2000
        assert loop.pending == []

    def test_transfer_stops_associated_timers(self, commands, context):
        emergency, timer = commands.start_cpr()

        transferred = commands.transfer_emergency(emergency.emergency_id)

        assert transferred.status == EmergencyStatus.TRANSFERRED
        assert context.timers.get(timer.timer_id).running is False

    def test_resolve_unknown_is_noop(self, commands):
        assert commands.resolve_emergency("emergency_missing") is None

    def test_replaced_timer_bookkeeping_dropped(self, scheduled_commands, loop):
        _, first = scheduled_commands.start_cpr()
        scheduled_commands.stop_timer(first.timer_id)

        _, second = scheduled_commands.start_cpr()

        assert first.timer_id not in scheduled_commands._timer_roles
        assert first.timer_id not in scheduled_commands._last_seen_ms
        assert second.timer_id in scheduled_commands._timer_roles
        assert scheduled_commands.scheduler.is_scheduled(first.timer_id) is False

    def test_resolve_drops_tick_bookkeeping(self, scheduled_commands, loop):
        emergency, _ = scheduled_commands.give_medication()
        scheduled_commands.start_cpr()
        loop.fire(times=2)

        scheduled_commands.resolve_emergency(emergency.emergency_id)

        assert scheduled_commands._timer_roles == {}
        assert scheduled_commands._timer_labels == {}
        assert scheduled_commands._last_seen_ms == {}
        assert scheduled_commands.scheduler.scheduled_timer_ids == []

    def test_scheduler_without_loop_fails_before_any_command(self, context):
        with pytest.raises(RuntimeError):
            EmergencyCommands(context, scheduler=TickScheduler(context.timers))

        assert context.sessions.list_all() == []
        assert context.timers.list_timers() == []

    def test_teardown_cancels_ticks(self, scheduled_commands, loop, context):
        _, timer = scheduled_commands.start_cpr()
        loop.fire()

        assert scheduled_commands.teardown() == 2
        loop.fire(times=3)

        assert context.timers.get(timer.timer_id).elapsed_ms == 1000

    def test_teardown_without_scheduler(self, commands):
        assert commands.teardown() == 0


class TestIntervalAlerts:
    def test_cpr_warning_then_due(self, scheduled_commands, context, loop):
        scheduled_commands.start_cpr()

        loop.fire(times=3)
        alerts = context.alerts.list_alerts()
        assert [a.severity for a in alerts] == [AlertSeverity.WARNING]
        assert alerts[0].message == "Pulse/rhythm check due in 1s"

        loop.fire()
        alerts = context.alerts.list_alerts()
        assert [a.severity for a in alerts] == [AlertSeverity.WARNING, AlertSeverity.URGENT]
        assert alerts[1].message == "Pulse/rhythm check due now"

    def test_cpr_alerts_repeat_each_interval(self, scheduled_commands, context, loop):
        scheduled_commands.start_cpr()

        loop.fire(times=8)

        assert len(context.alerts.list_alerts(AlertSeverity.WARNING)) == 2
        assert len(context.alerts.list_alerts(AlertSeverity.URGENT)) == 2

    def test_code_timer_raises_no_alerts(self, scheduled_commands, context, loop):
        scheduled_commands.begin_response(EmergencyKind.STROKE)

        loop.fire(times=10)

        assert context.alerts.list_alerts() == []

    def test_medication_due_uses_label(self, scheduled_commands, context, loop):
        scheduled_commands.give_medication(label="Amiodarone 300mg")

        loop.fire(times=6)

        messages = [a.message for a in context.alerts.list_alerts()]
        assert messages == ["Amiodarone 300mg due in 1s", "Amiodarone 300mg due now"]

    def test_reset_restarts_interval(self, scheduled_commands, context, loop):
        _, timer = scheduled_commands.start_cpr()
        loop.fire(times=2)

        scheduled_commands.reset_timer(timer.timer_id)
        loop.fire(times=2)

        assert context.timers.get(timer.timer_id).elapsed_ms == 2000
        assert context.alerts.list_alerts() == []


class TestCodeBlueScenario:
    def test_checklist_and_cycle_timer(self, context, loop):
        scheduler = TickScheduler(context.timers, loop=loop)
        emergency = context.sessions.activate(
            EmergencyKind.CARDIAC_ARREST, ["Call Code", "Start CPR", "Get Cart"]
        )

        context.sessions.record_action_completed(emergency.emergency_id, "Start CPR")
        context.sessions.record_action_completed(emergency.emergency_id, "Start CPR")
        assert set(context.sessions.get(emergency.emergency_id).completed_actions) == {
            "Start CPR"
        }

        timer = context.timers.start(TimerKind.CYCLE_COUNTED)
        scheduler.schedule(timer.timer_id, 1000)
        loop.fire(times=3)
        context.timers.increment_cycle(timer.timer_id)
        context.timers.increment_cycle(timer.timer_id)

        snapshot = context.timers.get(timer.timer_id)
        assert snapshot.elapsed_ms == 3000
        assert snapshot.cycle_count == 2

        context.timers.stop(timer.timer_id)
        loop.fire(times=3)
        assert context.timers.get(timer.timer_id).elapsed_ms == 3000


class TestContextSnapshot:
    def test_snapshot_shape(self, commands, context):
        commands.start_cpr()
        context.alerts.add("Team lead: Dr. Ortiz", AlertSeverity.WARNING)

        data = context.snapshot()

        assert len(data["active_emergencies"]) == 1
        assert data["timers"][0]["kind"] == "cycle_counted"
        assert data["alerts"][0]["severity"] == "warning"
