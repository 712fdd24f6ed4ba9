# plan blob codec: serialize generated content for storage, validate it on the way back
# plus a markdown renderer used by the library export endpoint

import logging

from pydantic import ValidationError

from app.models.plan import GeneratedPlanContent
from app.services.errors import MalformedPlanData

logger = logging.getLogger(__name__)

PLAN_DATA_ERROR = "Error loading plan data"


def serialize_plan(content: GeneratedPlanContent) -> str:
    """json text stored on the plan record (camelCase keys)"""
    return content.model_dump_json(by_alias=True)


def parse_plan(plan_data: str | None) -> GeneratedPlanContent:
    """parse and schema-validate a stored plan blob, raising MalformedPlanData on any defect"""
    if not plan_data:
        raise MalformedPlanData("Plan data is empty")
    try:
        return GeneratedPlanContent.model_validate_json(plan_data)
    except ValidationError as e:
        logger.warning(f"Stored plan blob failed validation: {e.error_count()} error(s)")
        raise MalformedPlanData(str(e)) from e


def plan_title_or_none(plan_data: str | None) -> str | None:
    """title for list cards; unreadable blobs just show no title"""
    try:
        return parse_plan(plan_data).plan_title
    except MalformedPlanData:
        return None


def render_markdown(record: dict, content: GeneratedPlanContent) -> str:
    """render a saved plan as a markdown document for export"""
    lines = [
        f"# {content.plan_title}",
        "",
        f"**Patient:** {record.get('patient_name', '')}, {record.get('patient_age', '')} years",
        f"**Diagnosis:** {record.get('diagnosis', '')}",
        f"**Primary goal:** {record.get('primary_goal', '')}",
        f"**Status:** {record.get('status', '')}",
        f"**Created:** {record.get('created_at', '')}",
        "",
        "## Overview",
        "",
        content.overview,
        "",
    ]

    if content.objectives:
        lines += ["## Objectives", ""]
        for objective in content.objectives:
            lines.append(f"- **{objective.goal}**: {objective.measurable_outcome} ({objective.timeframe})")
        lines.append("")

    if content.activities:
        lines += ["## Activities", ""]
        for activity in content.activities:
            lines += [f"### {activity.name} ({activity.duration})", "", activity.description, ""]
            if activity.materials:
                lines.append(f"- Materials: {', '.join(activity.materials)}")
            if activity.adaptations:
                lines.append(f"- Adaptations: {activity.adaptations}")
            if activity.progress_measures:
                lines.append(f"- Progress measures: {activity.progress_measures}")
            lines.append("")

    if content.weekly_schedule:
        lines += ["## Weekly schedule", ""]
        for entry in content.weekly_schedule:
            lines.append(f"- Week {entry.week}: {entry.focus} ({', '.join(entry.activities)})")
        lines.append("")

    if content.assessment_methods:
        lines += ["## Assessment methods", ""]
        lines += [f"- {method}" for method in content.assessment_methods]
        lines.append("")

    if content.recommendations:
        lines += ["## Recommendations", ""]
        lines += [f"- {item}" for item in content.recommendations]
        lines.append("")

    return "\n".join(lines)
