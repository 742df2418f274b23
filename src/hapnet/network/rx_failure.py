"""Receive-drop reason classification.

The reason-code space reported by physical layers is version dependent and
only partially enumerated here. Anything not recognised lands in
``RxDropReason.OTHER`` instead of being guessed.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping, Optional, Union


class RxDropReason(str, Enum):
    SIGNAL_TOO_WEAK = "signal too weak"
    PREAMBLE_DETECT_FAILURE = "preamble detection failure"
    RECEPTION_ABORTED_BY_TX = "reception aborted by tx"
    TXING = "transmitting"
    RXING = "already receiving"
    OTHER = "other"

    @classmethod
    def classify(
        cls,
        reason: Union["RxDropReason", str, int, None],
        code_map: Optional[Mapping[int, "RxDropReason"]] = None,
    ) -> "RxDropReason":
        """
        Map a raw reason (enum member, label, member name or numeric code)
        to a member, falling back to OTHER.

        Numeric codes are only resolved through ``code_map`` because their
        meaning depends on the reporting layer's version.
        """
        if isinstance(reason, cls):
            return reason
        if isinstance(reason, str):
            key = reason.strip()
            for member in cls:
                if key.lower() == member.value or key.upper() == member.name:
                    return member
            return cls.OTHER
        if isinstance(reason, int) and code_map is not None:
            return code_map.get(reason, cls.OTHER)
        return cls.OTHER

    @property
    def label(self) -> str:
        return self.value
