"""Human-readable explanations and recommendations for candidate solutions."""

from __future__ import annotations

from ...models.domain import ConflictResolution, ScheduleChange, Solution
from .scoring import categorize_impact

CHANGE_TYPE_REASONS = {
    "reorder": "reordering appointments eliminates time conflicts",
    "reschedule": "rescheduling to better times provides adequate gaps",
    "buffer-adjust": "adjusting buffers ensures minimum time between appointments",
    "duration-adjust": "adjusting durations makes the schedule fit in available time",
}

MANUAL_ADJUSTMENT_GUIDANCE = [
    "This conflict cannot be resolved with simple adjustments.",
    "Consider:",
    "  1. Rescheduling one appointment to a different day",
    "  2. Extending operating hours (if possible)",
    "  3. Splitting long appointments across multiple days",
    "  4. Consult with clients about time flexibility",
]


def _explain_change(change: ScheduleChange) -> str:
    match change.type:
        case "reorder":
            return (
                f"REORDER: Move {change.appointment_name} to resolve time conflict. "
                "This repositions the appointment to a better slot."
            )
        case "reschedule":
            return (
                f"RESCHEDULE: Adjust {change.appointment_name} from {change.original_time} "
                f"to {change.proposed_time}. {change.reason}"
            )
        case "buffer-adjust":
            return (
                f'BUFFER: For "{change.appointment_name}", increase gap by {change.impact_minutes} '
                "minutes to meet minimum buffer requirements."
            )
        case "duration-adjust":
            return f"DURATION: Adjust length of {change.appointment_name} to fit schedule constraints."
    return f"CHANGE: Modified {change.appointment_name} - {change.reason}"


def _feasibility_lines(solution: Solution) -> list[str]:
    if solution.is_feasible:
        lines = ["SOLUTION FEASIBLE: This schedule can be implemented without conflicts."]
        if solution.success_rate >= 1.0:
            lines.append("   - All tested scenarios are valid with this configuration")
        elif solution.success_rate >= 0.7:
            lines.append("   - Most tested scenarios (70%+) are valid with this configuration")
        return lines

    lines = ["SOLUTION NOT FEASIBLE: This schedule still has conflicts that need resolution."]
    if solution.success_rate == 0:
        lines.append("   - No tested scenarios work with current constraints")
        lines.append("   - Consider more significant changes or removing appointments")
    elif solution.success_rate < 0.3:
        lines.append("   - Very few scenarios work (less than 30%)")
        lines.append("   - Schedule is very tightly packed")
    return lines


def _impact_lines(solution: Solution) -> list[str]:
    category = categorize_impact(solution.impact_score)
    descriptions = {
        "low": "Minimal changes to original schedule",
        "medium": "Moderate changes required",
        "high": "Significant schedule changes",
    }
    lines = [
        "IMPACT ANALYSIS:",
        f"   - {category.upper()} IMPACT (Score: {solution.impact_score}): {descriptions[category]}",
    ]

    if not solution.changes:
        lines.append("   - No schedule changes needed (perfect fit)")
    elif len(solution.changes) == 1:
        lines.append("   - Only 1 appointment needs adjustment")
    else:
        lines.append(f"   - {len(solution.changes)} appointments require changes")

    total_impact = int(sum(change.impact_minutes for change in solution.changes))
    if total_impact > 0:
        hours, minutes = divmod(total_impact, 60)
        if hours:
            lines.append(f"   - Total schedule disruption: {hours}h {minutes}min")
        else:
            lines.append(f"   - Total schedule disruption: {minutes} minutes")

    percent = f"{solution.success_rate * 100:.0f}%"
    if solution.success_rate > 0.9:
        lines.append(f"   - High confidence ({percent} success rate)")
    elif solution.success_rate > 0.5:
        lines.append(f"   - Medium confidence ({percent} success rate)")
    else:
        lines.append(f"   - Low confidence ({percent} success rate)")
    return lines


def _why_this_works(solution: Solution) -> str:
    if not solution.changes:
        return "This works because no changes are needed - the schedule is already optimal."

    present = {change.type for change in solution.changes}
    reasons = [reason for change_type, reason in CHANGE_TYPE_REASONS.items() if change_type in present]
    if not reasons:
        return "This solution provides a feasible schedule with acceptable changes."
    return f"This solution works because {', '.join(reasons)}."


def generate_explanation(solution: Solution) -> list[str]:
    """Explanation lines to append after a solution's own reasoning."""

    lines = [_explain_change(change) for change in solution.changes]
    lines.extend(_feasibility_lines(solution))
    lines.extend(_impact_lines(solution))
    if solution.is_feasible and solution.success_rate > 0.7:
        lines.append(_why_this_works(solution))
    return [line for line in lines if line]


def generate_recommendation(resolution: ConflictResolution) -> str:
    solution = resolution.recommended_solution
    if solution is None:
        return "NO FEASIBLE SOLUTION: Consider rescheduling to different days or removing appointments."

    category = categorize_impact(solution.impact_score)
    return (
        f"RECOMMENDATION: {solution.feasibility.upper()} solution with {category} impact. "
        f"{len(solution.changes)} change(s) required."
    )


def generate_detailed_recommendation(resolution: ConflictResolution) -> list[str]:
    solution = resolution.recommended_solution
    if solution is None:
        return list(MANUAL_ADJUSTMENT_GUIDANCE)
    if not solution.changes:
        return ["No changes needed. The schedule is already optimal."]

    lines = ["RECOMMENDED ACTION:"]
    for index, change in enumerate(solution.changes, start=1):
        if change.type == "reorder":
            lines.append(f'{index}. Reorder "{change.appointment_name}" to better position in schedule')
        elif change.type == "reschedule":
            lines.append(
                f'{index}. Move "{change.appointment_name}" from {change.original_time} to {change.proposed_time}'
            )
        elif change.type == "buffer-adjust":
            lines.append(f'{index}. Add {abs(change.impact_minutes)} minutes buffer before "{change.appointment_name}"')
        elif change.type == "duration-adjust":
            lines.append(f'{index}. Adjust duration for "{change.appointment_name}"')
    return lines
