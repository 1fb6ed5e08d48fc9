import json
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

FENCE_RX = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class PayloadKind(StrEnum):
    STRICT = "strict"
    FENCED = "fenced"
    UNPARSABLE = "unparsable"


@dataclass
class DecodedPayload:
    kind: PayloadKind
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.kind != PayloadKind.UNPARSABLE


def decode_llm_json(text: str) -> DecodedPayload:
    """Decode a model answer that is either bare JSON or JSON inside a ``` fence.

    A fenced block wins when present; its contents are the only candidate.
    """
    match = FENCE_RX.search(text or "")
    if match:
        kind, candidate = PayloadKind.FENCED, match.group(1).strip()
    else:
        kind, candidate = PayloadKind.STRICT, (text or "").strip()

    try:
        return DecodedPayload(kind, json.loads(candidate))
    except json.JSONDecodeError:
        return DecodedPayload(PayloadKind.UNPARSABLE)
