"""
Agenda message formatting.
"""

from collections.abc import Sequence

from core.config import EXCLUDED_FOCUS_AREA
from models.events import DayAnalysis

GREETING = "Good morning!"
INTRO = "Here is the recommended plan for today, my friend."

SALES_PREP_ITEMS = [
    "Prepare an analysis of product metrics on user activity",
    "Refresh the actions on the main sales vectors",
    "Gradually hand over to Anya: take part less, or lead without taking on a pile of points",
]


def format_agenda_message(analysis: DayAnalysis, focus_areas: Sequence[str]) -> str:
    """
    Render the day analysis as a chat message.

    Preparation sections appear only for flagged meetings, in a fixed
    order, numbered over the sections actually emitted.
    """
    lines = [
        GREETING,
        INTRO,
        "",
        f"Free hours: {analysis.free_hours:g}",
        "",
        f"Day type: {analysis.day_category.value}",
    ]

    if analysis.has_any_tasks:
        lines.extend(["", "Suggested tasks:", ""])
        counter = 1

        if analysis.has_sales_status_upcoming:
            lines.append(f"{counter}. Prepare for the sales status:")
            lines.append("")
            lines.extend(f"- {item}" for item in SALES_PREP_ITEMS)
            lines.append("")
            counter += 1

        if analysis.has_internal_status_upcoming:
            lines.append(f"{counter}. Prepare for the status with the boss")
            lines.append("")
            lines.append(f"— Content: {analysis.week_content.value}")
            lines.append("")
            counter += 1

            prep = analysis.boss_preparation
            if prep:
                if prep.conceptual_thoughts:
                    lines.append("— Conceptual thoughts:")
                    lines.extend(f"—— {thought}" for thought in prep.conceptual_thoughts)
                    lines.append("")
                if prep.meeting_selection:
                    lines.append("— Selection for the next meeting:")
                    lines.extend(f"—— {item}" for item in prep.meeting_selection)
                    lines.append("")

        if analysis.has_product_review_upcoming:
            lines.append(f"{counter}. Prepare for the product status")

    lines.extend(["", "Big blocks:", ""])
    lines.extend(f"- {area}" for area in focus_areas if area != EXCLUDED_FOCUS_AREA)

    return "\n".join(lines)
