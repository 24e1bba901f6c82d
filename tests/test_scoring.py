from visit_planner.models.domain import (
    BufferConfiguration,
    ConflictResolution,
    ScheduleChange,
    SchedulingConflict,
    SimulationStats,
    Solution,
)
from visit_planner.services.simulation.explanations import (
    generate_detailed_recommendation,
    generate_explanation,
    generate_recommendation,
)
from visit_planner.services.simulation.scoring import (
    calculate_buffer_deviation_score,
    calculate_disruption_score,
    calculate_impact_score,
    calculate_solution_stats,
    categorize_impact,
    generate_scorecard,
    grade_impact,
    rank_solutions,
    select_best_solution,
)


def _change(change_type: str = "buffer-adjust", minutes: float = 240, name: str = "Client A") -> ScheduleChange:
    return ScheduleChange(
        type=change_type,
        appointment_id=name,
        appointment_name=name,
        original_time="09:00",
        proposed_time="10:00",
        reason="Test change",
        impact_minutes=minutes,
    )


def _solution(
    changes=None,
    success_rate: float = 1.0,
    best_gap: float = 0,
    feasibility: str = "feasible",
    impact_score: float = 0,
) -> Solution:
    return Solution(
        changes=list(changes or []),
        success_rate=success_rate,
        impact_score=impact_score,
        feasibility=feasibility,
        reasoning=["Original reasoning"],
        statistics=SimulationStats(best_scenario_gap_minutes=best_gap),
    )


def test_disruption_score():
    assert calculate_disruption_score(_solution()) == 0
    assert calculate_disruption_score(_solution([_change(minutes=240)])) == 50.0
    assert calculate_disruption_score(_solution([_change(minutes=960)])) == 100


def test_buffer_deviation_bands():
    config = BufferConfiguration(base_buffer_minutes=45)

    assert calculate_buffer_deviation_score(_solution(best_gap=0), config) == 0
    assert calculate_buffer_deviation_score(_solution(best_gap=45), config) == 0
    assert calculate_buffer_deviation_score(_solution(best_gap=60), config) == 25
    assert calculate_buffer_deviation_score(_solution(best_gap=90), config) == 60
    assert calculate_buffer_deviation_score(_solution(best_gap=100), config) == 100


def test_impact_score_follows_weighted_formula():
    solution = _solution([_change(minutes=240)], success_rate=0.5, best_gap=60)
    config = BufferConfiguration(base_buffer_minutes=45)

    assert calculate_impact_score(solution, config) == 42.5
    assert calculate_impact_score(solution, config) == calculate_impact_score(solution, config)


def test_stored_score_can_be_recomputed():
    solution = _solution([_change(minutes=75), _change(minutes=20)], success_rate=0.35, best_gap=50)
    solution.impact_score = calculate_impact_score(solution)

    disruption = calculate_disruption_score(solution)
    deviation = calculate_buffer_deviation_score(solution)
    recomputed = round(0.4 * disruption + 0.3 * 100 * (1 - solution.success_rate) + 0.3 * deviation, 2)

    assert solution.impact_score == recomputed


def test_ranking_is_stable_for_equal_scores():
    first = _solution([_change(name="First")])
    second = _solution([_change(name="Second")])
    worse = _solution([_change(name="Worse")], success_rate=0.2)

    ranked = rank_solutions([worse, first, second])

    assert ranked == [first, second, worse]
    assert select_best_solution([worse, first]) is first
    assert select_best_solution([]) is None


def test_categories_grades_and_scorecard():
    assert [categorize_impact(score) for score in (30, 30.01, 60, 61)] == ["low", "medium", "medium", "high"]
    assert [grade_impact(score) for score in (25, 40, 55, 70, 71)] == ["A", "B", "C", "D", "F"]

    scorecard = generate_scorecard(_solution([_change(minutes=240)], success_rate=0.5, best_gap=60))

    assert scorecard.total_impact == 42.5
    assert scorecard.impact_category == "medium"
    assert scorecard.grade == "C"


def test_solution_stats():
    stats = calculate_solution_stats([_solution(success_rate=1.0), _solution(success_rate=0.5, feasibility="infeasible")])

    assert stats["total_solutions"] == 2
    assert stats["feasible_solutions"] == 1
    assert stats["feasibility_rate"] == 50
    assert stats["avg_success_rate"] == 0.75
    assert calculate_solution_stats([])["feasibility_rate"] == 0


def test_explanation_describes_changes_feasibility_and_impact():
    solution = _solution([_change(minutes=90), _change("reorder", 30, "Client B")], success_rate=0.9, impact_score=20)

    lines = generate_explanation(solution)

    assert lines[0] == 'BUFFER: For "Client A", increase gap by 90 minutes to meet minimum buffer requirements.'
    assert lines[1].startswith("REORDER: Move Client B")
    assert "SOLUTION FEASIBLE: This schedule can be implemented without conflicts." in lines
    assert "   - Most tested scenarios (70%+) are valid with this configuration" in lines
    assert "   - LOW IMPACT (Score: 20): Minimal changes to original schedule" in lines
    assert "   - 2 appointments require changes" in lines
    assert "   - Total schedule disruption: 2h 0min" in lines
    assert "   - Medium confidence (90% success rate)" in lines
    assert lines[-1] == (
        "This solution works because reordering appointments eliminates time conflicts, "
        "adjusting buffers ensures minimum time between appointments."
    )
    assert "Original reasoning" not in lines


def test_explanation_for_infeasible_solution():
    lines = generate_explanation(_solution(success_rate=0, feasibility="infeasible", impact_score=75))

    assert "SOLUTION NOT FEASIBLE: This schedule still has conflicts that need resolution." in lines
    assert "   - No tested scenarios work with current constraints" in lines
    assert "   - HIGH IMPACT (Score: 75): Significant schedule changes" in lines
    assert "   - No schedule changes needed (perfect fit)" in lines
    assert not any(line.startswith("This solution works") for line in lines)


def test_recommendations():
    conflict = SchedulingConflict(appointments=(None, None), gap_minutes=20, required_minutes=30, severity="minor")
    solved = ConflictResolution(
        conflict=conflict,
        solutions=[],
        recommended_solution=_solution(
            [_change(minutes=15), _change("reschedule", 60, "Client B")], impact_score=45
        ),
    )
    unsolved = ConflictResolution(conflict=conflict, solutions=[], recommended_solution=None)

    assert generate_recommendation(solved) == (
        "RECOMMENDATION: FEASIBLE solution with medium impact. 2 change(s) required."
    )
    assert generate_recommendation(unsolved).startswith("NO FEASIBLE SOLUTION")
    assert generate_detailed_recommendation(solved) == [
        "RECOMMENDED ACTION:",
        '1. Add 15 minutes buffer before "Client A"',
        '2. Move "Client B" from 09:00 to 10:00',
    ]
    assert generate_detailed_recommendation(unsolved)[0] == "This conflict cannot be resolved with simple adjustments."


def test_zero_base_buffer_scores_without_dividing():
    config = BufferConfiguration(base_buffer_minutes=0)

    assert calculate_buffer_deviation_score(_solution(best_gap=0), config) == 0
    assert calculate_buffer_deviation_score(_solution(best_gap=30), config) == 100
    assert calculate_impact_score(_solution(best_gap=30), config) == 30
