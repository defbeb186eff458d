"""Human readable circuit reports."""
from typing import Iterable

from .flow_rule import FlowRule
from .schema import CircuitDetails, PathName


def generate_clr(details: CircuitDetails) -> str:
    """
    Circuit layout record: endpoints and the links of each path.

    Example:
        Circuit: demo
        Created by: Jane Doe at 2024-01-01 for workgroup NOC

        Endpoints:
          sw-a - eth1 VLAN 100

        Primary Path:
          link-ab
    """
    lines = [f"Circuit: {details.name}"]

    if details.created_by or details.created_on:
        created = f"Created by: {details.created_by} at {details.created_on}"
        if details.workgroup:
            created += f" for workgroup {details.workgroup}"
        lines.append(created)
    if details.last_modified_by or details.last_edited:
        lines.append(
            f"Last Modified By: {details.last_modified_by} at {details.last_edited}"
        )

    lines.append("")
    lines.append("Endpoints:")
    for endpoint in details.endpoints:
        tag = "Untagged" if endpoint.untagged else endpoint.tag
        interface = endpoint.interface or f"port {endpoint.port_no}"
        lines.append(f"  {endpoint.node} - {interface} VLAN {tag}")

    lines.append("")
    lines.append("Primary Path:")
    for link in details.path_links(PathName.PRIMARY):
        lines.append(f"  {link.name}")

    if details.has_backup_path:
        lines.append("")
        lines.append("Backup Path:")
        for link in details.path_links(PathName.BACKUP):
            lines.append(f"  {link.name}")

    return "\n".join(lines) + "\n"


def generate_clr_raw(flows: Iterable[FlowRule]) -> str:
    """Every flow rule rendered with FlowRule.to_human, one block each."""
    return "".join(flow.to_human() + "\n" for flow in flows)
