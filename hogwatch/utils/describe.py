"""Human-readable summaries of decoded PostHog events."""

from __future__ import annotations

from typing import Any

EVENT_TYPE_VERBS = {
    "click": "clicked",
    "change": "typed something into",
    "submit": "submitted",
    "touch": "touched a",
    "value_changed": "changed value in",
    "toggle": "toggled",
    "menu_action": "pressed menu",
    "swipe": "swiped",
    "pinch": "pinched",
    "pan": "panned",
    "rotation": "rotated",
    "long_press": "long pressed",
    "scroll": "scrolled in",
}

# Property keys used to describe an event type in one line.
DESCRIPTION_KEYS = {
    "$feature_flag_called": ("$feature_flag", "$feature_flag_response"),
}

FILTERABLE_EVENT_TYPES = {
    "$pageview": "Page View",
    "$pageleave": "Page Leave",
    "$autocapture": "Auto Capture",
    "$identify": "Identify",
    "$set": "Set Properties",
    "$groupidentify": "Group Identify",
    "$feature_flag_called": "Feature Flag",
    "$exception": "Exception",
    "$web_vitals": "Web Vitals",
    "$performance_event": "Performance",
    "$snapshot": "Session Recording",
    "$rageclick": "Rage Click",
    "$$heatmap": "Heatmap",
}


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _event_name(event: dict[str, Any]) -> str:
    name = event.get("event")
    return name if isinstance(name, str) else ""


def _first_element(event: dict[str, Any]) -> dict[str, Any]:
    elements = event.get("elements")
    if isinstance(elements, list) and elements and isinstance(elements[0], dict):
        return elements[0]
    return {}


def autocapture_description(event: dict[str, Any], short_form: bool = False) -> str:
    name = _event_name(event)
    if name != "$autocapture":
        return name

    properties = _as_dict(event.get("properties"))
    element = _first_element(event)

    event_type = properties.get("$event_type")
    verb = "interacted with"
    if isinstance(event_type, str):
        verb = EVENT_TYPE_VERBS.get(event_type, verb)

    tag_name = element.get("tag_name")
    if tag_name == "a":
        tag = "link"
    elif tag_name == "img":
        tag = "image"
    else:
        tag = tag_name or "element"

    value = None
    aria_label = _as_dict(element.get("attributes")).get("attr__aria-label")
    if properties.get("$el_text"):
        value = f'{"" if short_form else "with text "}"{properties["$el_text"]}"'
    elif element.get("text"):
        value = f'{"" if short_form else "with text "}"{element["text"]}"'
    elif aria_label:
        value = f'{"" if short_form else "with aria label "}"{aria_label}"'

    if short_form:
        return " ".join(part for part in (verb, value or tag) if part)
    return " ".join(part for part in (verb, tag, value) if part)


def event_to_description(event: dict[str, Any], short_form: bool = False) -> str:
    name = _event_name(event)
    properties = _as_dict(event.get("properties"))

    if name in ("$pageview", "$pageleave"):
        for key in ("$pathname", "$current_url"):
            if properties.get(key) is not None:
                return properties[key]
        return "<unknown URL>"

    if name == "$autocapture":
        return autocapture_description(event, short_form)

    keys = DESCRIPTION_KEYS.get(name, ())
    parts = [properties.get(key) for key in keys]
    parts = [value for value in parts if value is not None and value != ""]
    if parts:
        return " → ".join(f'"{value}"' if isinstance(value, str) else _js_str(value) for value in parts)

    return name


def _js_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def get_event_display_name(event_name: str) -> str:
    return FILTERABLE_EVENT_TYPES.get(event_name, event_name)


def is_filterable_event_type(event_name: str) -> bool:
    return event_name in FILTERABLE_EVENT_TYPES
