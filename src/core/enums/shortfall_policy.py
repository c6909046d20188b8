# src/core/enums/shortfall_policy.py

from enum import Enum

class ShortfallPolicy(str, Enum):
    """
    Defines what happens when a SELL asks for more shares than the open lots hold.
    WARN matches what is available and reports the shortfall; REJECT refuses the sell.
    """
    WARN = "WARN"
    REJECT = "REJECT"
