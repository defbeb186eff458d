"""Flow rules: match criteria plus an ordered action list for one switch."""
from dataclasses import dataclass, field
from typing import Optional

from ..config.settings import DEFAULT_PRIORITY
from .schema import UNTAGGED

SET_VLAN_VID = "set_vlan_vid"
OUTPUT = "output"


def mac_to_int(mac: str) -> int:
    """Convert "00:1b:21:3a:4c:5d" to its 48-bit integer value."""
    return int(mac.replace(":", ""), 16)


def int_to_mac(value: int) -> str:
    digits = f"{value:012x}"
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


def _vlan_str(tag: int) -> str:
    return "untagged" if tag == UNTAGGED else str(tag)


@dataclass(frozen=True)
class FlowMatch:
    """Match criteria of a flow rule."""
    dl_vlan: int
    in_port: int
    dl_dst: Optional[int] = None


@dataclass(frozen=True)
class FlowAction:
    """A single flow action: set_vlan_vid or output."""
    kind: str
    value: int

    def to_human(self) -> str:
        if self.kind == SET_VLAN_VID:
            return f"SET VLAN ID: {_vlan_str(self.value)}"
        if self.kind == OUTPUT:
            return f"OUTPUT: {self.value}"
        return f"{self.kind.upper()}: {self.value}"


def set_vlan(tag: int) -> FlowAction:
    return FlowAction(SET_VLAN_VID, tag)


def output(port: int) -> FlowAction:
    return FlowAction(OUTPUT, port)


@dataclass
class FlowRule:
    """A switch forwarding instruction.

    Two rules describe the same switch entry when dpid and match are equal;
    their actions can then be merged.
    """
    dpid: int
    match: FlowMatch
    actions: list[FlowAction] = field(default_factory=list)
    priority: int = DEFAULT_PRIORITY

    @property
    def key(self) -> tuple[int, FlowMatch]:
        return self.dpid, self.match

    def compare_match(self, other: "FlowRule") -> bool:
        """True if other targets the same switch with the same match."""
        return self.key == other.key

    def merge_actions(self, other: "FlowRule") -> None:
        """Append the actions of other that change what this rule does.

        A set_vlan_vid equal to the tag already in effect is dropped, as is an
        output already emitted with the same tag, so merging a rule twice or
        merging an identical rule leaves the action list unchanged.
        """
        current_tag = None
        emitted = set()
        for action in self.actions:
            if action.kind == SET_VLAN_VID:
                current_tag = action.value
            elif action.kind == OUTPUT:
                emitted.add((current_tag, action.value))

        for action in other.actions:
            if action.kind == SET_VLAN_VID:
                if action.value == current_tag:
                    continue
                current_tag = action.value
            elif action.kind == OUTPUT:
                if (current_tag, action.value) in emitted:
                    continue
                emitted.add((current_tag, action.value))
            self.actions.append(action)

        # trailing tag change with no output after it
        if self.actions and self.actions[-1].kind == SET_VLAN_VID:
            self.actions.pop()

    def copy(self) -> "FlowRule":
        return FlowRule(
            dpid=self.dpid,
            match=self.match,
            actions=list(self.actions),
            priority=self.priority,
        )

    def output_ports(self) -> list[int]:
        return [a.value for a in self.actions if a.kind == OUTPUT]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        match = {"dl_vlan": self.match.dl_vlan, "in_port": self.match.in_port}
        if self.match.dl_dst is not None:
            match["dl_dst"] = self.match.dl_dst
        return {
            "dpid": self.dpid,
            "priority": self.priority,
            "match": match,
            "actions": [{a.kind: a.value} for a in self.actions],
        }

    def to_human(self) -> str:
        """Human readable rendering of the rule."""
        match = [f"VLAN: {_vlan_str(self.match.dl_vlan)}", f"IN PORT: {self.match.in_port}"]
        if self.match.dl_dst is not None:
            match.append(f"DST MAC: {int_to_mac(self.match.dl_dst)}")

        lines = [
            "OFFlowMod:",
            f"  DPID: {self.dpid:#x}",
            f"  Priority: {self.priority}",
            f"  Match: {', '.join(match)}",
        ]
        for i, action in enumerate(self.actions):
            prefix = "  Actions: " if i == 0 else "           "
            lines.append(prefix + action.to_human())
        return "\n".join(lines)
