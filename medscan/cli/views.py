"""Terminal rendering of application state"""
from typing import List

import click

from medscan.types.medicine import MedicineRecord
from medscan.types.state import AppState, Mode


def _section(title: str, items: List[str], numbered: bool = False) -> List[str]:
    if not items:
        return []
    lines = [click.style(title, bold=True)]
    if numbered:
        lines.extend(f"  {i}. {item}" for i, item in enumerate(items, start=1))
    else:
        lines.extend(f"  - {item}" for item in items)
    return lines


def render_record(record: MedicineRecord) -> str:
    """Result card for one medicine"""
    header = click.style(record.brand_name, fg="cyan", bold=True)
    if record.generic_name:
        header += f" ({record.generic_name})"

    lines = [header]
    if record.purpose:
        lines.append(record.purpose)
    if record.confidence is not None:
        lines.append(f"Confidence: {record.confidence:.0%}")
    lines.extend(_section("Ingredients", record.ingredients))
    lines.extend(_section("Reasons for use", record.reasons_for_use))
    lines.extend(_section("Side effects", record.side_effects))
    lines.extend(_section("Related medicines", record.related_medicines, numbered=True))
    if record.image_url:
        lines.append(f"Image: {record.image_url.split(',', 1)[0]},... ({len(record.image_url)} chars)")
    return "\n".join(lines)


def render_state(state: AppState) -> str:
    """Whole screen for the current mode"""
    if state.mode is Mode.LOADING:
        return click.style("Accessing clinical database...", fg="cyan")

    if state.mode is Mode.RESULT and state.active_record:
        card = render_record(state.active_record)
        if state.active_record.related_medicines:
            card += "\nType /related N to look up a related medicine."
        return card

    lines = []
    if state.mode is Mode.CAMERA_ACTIVE:
        if state.camera_error:
            lines.append(click.style(state.camera_error, fg="red"))
            lines.append("Type /retry to request camera access again.")
        else:
            lines.append("Camera ready. Type /capture to analyze the product in view.")
    else:
        lines.append(f"Search: {state.query_text}" if state.query_text else "Enter a medicine name.")

    if state.suggestions_visible:
        lines.append(click.style("Suggestions", bold=True))
        lines.extend(f"  {i}. {name}" for i, name in enumerate(state.suggestions, start=1))

    if state.last_error:
        lines.append(click.style(f"Analysis failed: {state.last_error}", fg="red"))
    return "\n".join(lines)
