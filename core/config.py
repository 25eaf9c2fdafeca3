"""
Rule configuration

Every numeric rule of the game lives here so variants can be expressed as data.
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass
class RulesConfig:
    """
    Rule constants

    Attributes:
        starting_reserve: tokens per side at game start (opening placements
            are taken from it)
        opening_tokens: opening placements per side
        initial_hand: routes dealt to each side after the opening
        hand_cap: escalation stops once a hand holds this many routes
        queue_size: face-up shared routes
        extra_reinforcement_cost: Reserve tokens burned into own Void
        early_swap_cost: Captives paid into the enemy's Void
        ransom_cost: Captives paid into the enemy's Void
        ransom_refund: own Void tokens returned to Reserve by a ransom
        evasion_cost_captives: Captives paid into the enemy's Void
        evasion_cost_reserves: Reserve tokens burned into own Void
        draft_invade_threshold: invasions in one turn that trigger a Draft
        draft_refund_cap: most Void tokens one Draft returns
        lock_min: enemy neighbours that lock a token
        full_siege: enemy neighbours that capture a token
        opening_first: side placing the first opening token
        action_first: side taking the first ACTION turn
    """
    # tokens
    starting_reserve: int = 18
    opening_tokens: int = 3

    # routes
    initial_hand: int = 2
    hand_cap: int = 4
    queue_size: int = 3

    # economy
    extra_reinforcement_cost: int = 2
    early_swap_cost: int = 2
    ransom_cost: int = 2
    ransom_refund: int = 1
    evasion_cost_captives: int = 1
    evasion_cost_reserves: int = 1

    # draft
    draft_invade_threshold: int = 3
    draft_refund_cap: int = 2

    # siege thresholds
    lock_min: int = 4
    full_siege: int = 8

    # turn order
    opening_first: str = "B"
    action_first: str = "W"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'RulesConfig':
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        return cls(**filtered)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def tournament(cls) -> 'RulesConfig':
        """Tournament variant: hands escalate to 5 routes"""
        return cls(hand_cap=5)

    @classmethod
    def classic(cls) -> 'RulesConfig':
        """Earlier ruleset with the higher economy prices"""
        return cls(extra_reinforcement_cost=3, early_swap_cost=3)
