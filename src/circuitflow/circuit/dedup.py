"""Flow deduplication.

Rules for the same switch with equal match criteria are one switch entry; the
later rule's actions are merged into the first one seen. This is how a node
ends up flooding a match to several ports.
"""
import logging
from typing import Iterable

from .flow_rule import FlowMatch, FlowRule

logger = logging.getLogger(__name__)


def dedup_flows(flows: Iterable[FlowRule]) -> list[FlowRule]:
    """
    Merge flows sharing (dpid, match), keeping first-seen order.

    The input rules are not modified; merged rules are copies.

    Args:
        flows: Flow rules of one path/category, or a combined list

    Returns:
        List with one rule per (dpid, match)
    """
    deduped: dict[tuple[int, FlowMatch], FlowRule] = {}
    merged = 0

    for flow in flows:
        if flow is None:
            continue
        existing = deduped.get(flow.key)
        if existing is None:
            deduped[flow.key] = flow.copy()
            continue
        existing.merge_actions(flow)
        merged += 1

    if merged:
        logger.debug(f"Merged {merged} duplicate flows into {len(deduped)} rules")
    return list(deduped.values())
