"""Response behaviors applied to a matched stub response.

Behaviors run in list order and each one receives the output of the
previous one. Only ``wait`` and ``copy`` exist here; configuration
validation rejects every other behavior type.
"""

import asyncio
import copy as copy_module
import logging
from typing import Any, Dict, List

from .stub_matcher import MISSING, get_field_value


logger = logging.getLogger(__name__)


def set_field_value(document: Dict[str, Any], path: str, value: Any) -> None:
    """Assign ``value`` at a dotted path, creating intermediate objects.

    Intermediate values that are not objects are replaced.
    """
    parts = path.split(".")
    target = document
    for part in parts[:-1]:
        if not isinstance(target.get(part), dict):
            target[part] = {}
        target = target[part]
    target[parts[-1]] = value


async def apply_wait(response: Dict[str, Any], milliseconds: float) -> Dict[str, Any]:
    """Delay this response only. Other processing continues meanwhile."""
    if milliseconds > 0:
        await asyncio.sleep(milliseconds / 1000)
    return response


def apply_copy(response: Dict[str, Any], copies: Any, request: Dict[str, Any]) -> Dict[str, Any]:
    """Copy request fields into the response. Missing or null sources are skipped."""
    if isinstance(copies, dict):
        copies = [copies]
    for entry in copies:
        value = get_field_value(request, entry["from"])
        if value is MISSING or value is None:
            logger.debug(f"Copy source '{entry['from']}' not present, skipping")
            continue
        set_field_value(response, entry["into"], copy_module.deepcopy(value))
    return response


async def apply_behaviors(template: Dict[str, Any], behaviors: List[Dict[str, Any]],
                          request: Dict[str, Any]) -> Dict[str, Any]:
    """Run ``behaviors`` over a copy of ``template``. The template is never mutated."""
    response = copy_module.deepcopy(template)
    for behavior in behaviors:
        # A behavior object may name several types; they apply in this order
        if "wait" in behavior:
            response = await apply_wait(response, behavior["wait"])
        if "copy" in behavior:
            response = apply_copy(response, behavior["copy"], request)
    return response
