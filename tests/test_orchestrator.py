import logging

from visit_planner.models.domain import BufferConfiguration, Flexibility, GeocodedAppointment
from visit_planner.services.simulation import orchestrator, report
from visit_planner.services.simulation.orchestrator import (
    SimulationOptions,
    get_best_overall_solution,
    get_simulation_summary,
    resolve_conflicts,
    run_conflict_simulations,
)
from visit_planner.services.simulation.report import check_schedule_feasibility_enhanced
from visit_planner.services.simulation.scoring import calculate_impact_score


def _appointment(
    aid: str,
    start: str | None = None,
    duration: int = 30,
    flexibility: str = "flexible",
    date: str = "2024-01-15",
    lat: float = 24.7,
    lng: float = 46.7,
) -> GeocodedAppointment:
    return GeocodedAppointment(
        id=aid,
        app_name=f"Client {aid}",
        address=f"{aid} Street",
        visit_duration_minutes=duration,
        start_time=start,
        date=date,
        flexibility=Flexibility(flexibility),
        row_number=0,
        latitude=lat,
        longitude=lng,
        formatted_address=f"{aid} Street",
    )


def _conflicting_day() -> list[GeocodedAppointment]:
    return [
        _appointment("A", "09:00", 60, "inflexible"),
        _appointment("B", "09:30", 30, "inflexible"),
        _appointment("C", "13:00", 30, "flexible", lat=24.75),
        _appointment("D", "15:00", 30, "flexible", lat=24.8),
    ]


def test_conflict_free_day_has_nothing_to_resolve(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("simulators must not run without conflicts")

    monkeypatch.setattr(orchestrator, "simulate_reordering", fail)
    appointments = [
        _appointment("A", "09:00", lat=24.7),
        _appointment("B", "11:00", lat=24.8),
        _appointment("C", "13:00", lat=24.9),
    ]

    assert resolve_conflicts(appointments) == []


def test_each_conflict_gets_ranked_explained_solutions():
    resolutions = resolve_conflicts(_conflicting_day())

    assert len(resolutions) == 1
    resolution = resolutions[0]
    assert [apt.id for apt in resolution.conflict.appointments] == ["A", "B"]
    assert resolution.solutions
    assert resolution.recommended_solution is resolution.solutions[0]
    scores = [calculate_impact_score(solution) for solution in resolution.solutions]
    assert scores == sorted(scores)
    assert all("IMPACT ANALYSIS:" in solution.reasoning for solution in resolution.solutions)
    change_types = {change.type for solution in resolution.solutions for change in solution.changes}
    assert {"reorder", "reschedule"} <= change_types


def test_rescheduling_can_be_disabled():
    resolutions = run_conflict_simulations(_conflicting_day(), SimulationOptions(run_rescheduling=False))

    change_types = {change.type for solution in resolutions[0].solutions for change in solution.changes}
    assert "reschedule" not in change_types


def test_failing_simulator_is_logged_and_skipped(monkeypatch, caplog):
    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(orchestrator, "simulate_reordering", boom)

    with caplog.at_level(logging.ERROR, logger=orchestrator.__name__):
        resolutions = resolve_conflicts(_conflicting_day())

    assert resolutions[0].solutions
    assert "Reordering simulation failed" in caplog.text


def test_exhausted_time_budget_omits_conflicts(caplog):
    with caplog.at_level(logging.WARNING, logger=orchestrator.__name__):
        resolutions = resolve_conflicts(_conflicting_day(), SimulationOptions(time_budget_ms=0))

    assert resolutions == []
    assert "time budget" in caplog.text


def test_summary_counts_skipped_conflicts():
    resolutions = resolve_conflicts(_conflicting_day())

    summary = get_simulation_summary(resolutions, total_conflicts=3)
    best_resolution, best_solution = get_best_overall_solution(resolutions)

    assert summary.total_conflicts == 3
    assert summary.conflicts_skipped == 2
    assert summary.conflicts_with_solutions == 1
    assert summary.total_solutions == len(resolutions[0].solutions)
    assert summary.feasible_solutions + summary.infeasible_solutions == summary.total_solutions
    assert best_resolution is resolutions[0]
    assert best_solution is resolutions[0].recommended_solution
    assert get_best_overall_solution([]) == (None, None)


def test_enhanced_report_for_feasible_schedule():
    result = check_schedule_feasibility_enhanced([_appointment("A", "09:00"), _appointment("B", "12:00")])

    assert result.is_feasible
    assert result.recommendations == ["Schedule is feasible with current constraints"]
    assert result.summary.total_conflicts == 0
    assert result.best_solution is None


def test_enhanced_report_for_conflicting_schedule():
    result = check_schedule_feasibility_enhanced(_conflicting_day())

    assert not result.is_feasible
    assert "too close" in result.errors[0]
    assert result.recommendations[0].startswith("RECOMMENDATION:")
    assert len(result.solutions) == 1
    formatted = result.solutions[0]
    assert formatted["conflict"]["appointments"]["first"]["name"] == "Client A"
    assert formatted["conflict"]["gap_minutes"] == 30
    assert formatted["conflict"]["severity"] == "major"
    assert len(formatted["solution"]["reasoning"]) <= 3
    assert result.best_solution == formatted
    assert result.summary.total_conflicts == 1
    assert result.summary.conflicts_with_solutions == 1


def test_enhanced_report_when_simulation_fails(monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(report, "resolve_conflicts", boom)

    result = check_schedule_feasibility_enhanced(_conflicting_day())

    assert result.errors
    assert result.recommendations == [
        "Could not run conflict resolution simulations",
        "Consider manual schedule adjustment",
    ]
    assert result.summary.conflicts_without_solutions == len(result.errors)


def test_zero_base_buffer_still_resolves_conflicts():
    options = SimulationOptions(buffer_config=BufferConfiguration(base_buffer_minutes=0))

    resolutions = resolve_conflicts(_conflicting_day(), options)

    assert len(resolutions) == 1
    assert resolutions[0].solutions
