"""
Heuristic discovery of forms on the current page.

Used when no configured form matches the page: scans ``<form>`` elements and
their required inputs and synthesises a minimal FormConfig. The result is
best-effort and flagged ``auto_detected`` so reports can say so.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..config.models import FormConfig
from .errors import ConfigurationError

logger = logging.getLogger("ga4check")


# Valid values used for synthesised fields, keyed by input type
DEFAULT_VALUES: Dict[str, Any] = {
    "text": "Test",
    "email": "test@example.com",
    "tel": "2125551234",
}
INVALID_VALUES: Dict[str, Any] = {
    "text": "",
    "email": "invalid-email",
    "tel": "123",
}

SUBMIT_CANDIDATES = [
    'button[type="submit"]',
    'input[type="submit"]',
    'button:not([type])',
]


def _js_scan_forms_script() -> str:
    # Returns [{formSelector, submitSelector, fields: [{name, type, selector, required, options}]}]
    return (
        "(submitCandidates) => {"
        " const cssId = (el) => el.id ? `#${CSS.escape(el.id)}` : null;"
        " const forms = Array.from(document.querySelectorAll('form'));"
        " return forms.map((form, index) => {"
        "   const formSelector = cssId(form) || `form:nth-of-type(${index + 1})`;"
        "   let submitSelector = null;"
        "   for (const cand of submitCandidates) {"
        "     if (form.querySelector(cand)) { submitSelector = `${formSelector} ${cand}`; break; }"
        "   }"
        "   const fields = {};"
        "   for (const el of Array.from(form.querySelectorAll('input, select, textarea'))) {"
        "     const type = el.tagName === 'SELECT' ? 'select' : (el.tagName === 'TEXTAREA' ? 'text' : (el.type || 'text'));"
        "     if (['hidden', 'submit', 'button', 'reset', 'image', 'file', 'password'].includes(type)) continue;"
        "     const name = el.name || el.id;"
        "     if (!name) continue;"
        "     const required = el.required || el.getAttribute('aria-required') === 'true';"
        "     if (fields[name]) {"
        "       if (el.value) fields[name].options.push(el.value);"
        "       fields[name].required = fields[name].required || required;"
        "       continue;"
        "     }"
        "     const grouped = type === 'radio' || (type === 'checkbox' && form.querySelectorAll(`input[name=\"${name}\"]`).length > 1);"
        "     const selector = grouped ? `input[name=\"${name}\"]` : (cssId(el) || `${formSelector} [name=\"${name}\"]`);"
        "     let options = [];"
        "     if (type === 'select') options = Array.from(el.options).map(o => o.value).filter(v => v);"
        "     else if (grouped && el.value) options = [el.value];"
        "     fields[name] = {name, type, selector, required, options, grouped};"
        "   }"
        "   return {formSelector, submitSelector, fields: Object.values(fields)};"
        " });"
        "}"
    )


def _field_values(field: Dict[str, Any]) -> Dict[str, Any]:
    ftype = field["type"]
    options = field.get("options") or []
    if ftype == "radio":
        return {"valid": options[0] if options else None, "invalid": None}
    if ftype == "checkbox":
        if field.get("grouped"):
            return {"valid": options[:1], "invalid": []}
        return {"valid": True, "invalid": False}
    if ftype == "select":
        return {"valid": options[0] if options else "", "invalid": ""}
    return {"valid": DEFAULT_VALUES[ftype], "invalid": INVALID_VALUES[ftype]}


def synthesize_form_config(scanned: Dict[str, Any], index: int = 0) -> Optional[FormConfig]:
    """Build a FormConfig from one scanned form; None if it cannot be submitted."""
    if not scanned.get("submitSelector"):
        logger.debug(f"[discovery] form {scanned.get('formSelector')} has no submit button")
        return None
    fields: Dict[str, Any] = {}
    for field in scanned.get("fields", []):
        ftype = field.get("type")
        if ftype == "number" or ftype == "search" or ftype == "url":
            ftype = "text"
        if ftype not in ("radio", "checkbox", "text", "email", "tel", "select"):
            continue
        field = dict(field, type=ftype)
        fields[field["name"]] = {
            "type": ftype,
            "selector": field["selector"],
            "options": field.get("options") or [],
            "required": bool(field.get("required")),
            "test_values": _field_values(field),
        }
    data = {
        "form_selector": scanned["formSelector"],
        "submit_button_selector": scanned["submitSelector"],
        "fields": fields,
        "auto_detected": True,
    }
    try:
        return FormConfig.from_dict(f"auto:{scanned['formSelector'] or index}", data)
    except ConfigurationError as e:
        logger.debug(f"[discovery] could not synthesise config: {e}")
        return None


def detect_forms(engine) -> List[FormConfig]:
    """Scan the current page and synthesise a config for every submittable form."""
    scanned = engine.evaluate(_js_scan_forms_script(), SUBMIT_CANDIDATES)
    configs: List[FormConfig] = []
    if isinstance(scanned, list):
        for index, form in enumerate(scanned):
            config = synthesize_form_config(form, index)
            if config is not None:
                configs.append(config)
    logger.info(f"[discovery] auto-detected {len(configs)} submittable form(s)")
    return configs
