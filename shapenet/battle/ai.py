from __future__ import annotations
from typing import List, Optional, Protocol, Tuple
import random

from shapenet.core.types import effectiveness
from .models import Action, Combatant

HEAL_THRESHOLD = 0.4
HEAL_SCORE = 999.0
STAB = 1.5

TAUNTS = (
    "Calculated.",
    "Optimal strategy engaged.",
    "Your angles are weak.",
    "Geometry is on my side.",
    "Prepare to be deleted.",
)


class OpponentPolicy(Protocol):
    def choose_action(self, own_active: Combatant, opponent_active: Combatant) -> Action: ...


def score_move(user: Combatant, foe: Combatant, index: int) -> float:
    slot = user.moves[index]
    m = slot.template
    if m.heal_fraction and user.current_hp < user.max_hp * HEAL_THRESHOLD:
        return HEAL_SCORE
    if m.is_status:
        return 0.0
    score = float(m.power)
    if m.type == user.type:
        score *= STAB
    return score * effectiveness(m.type, foe.type)


class HeuristicPolicy:
    """Greedy move picker: power x STAB x type, heal when low, first index wins ties."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def choose_action(self, own_active: Combatant, opponent_active: Combatant) -> Action:
        best = None
        best_score = -1.0
        for i, slot in enumerate(own_active.moves):
            if slot.pp <= 0:
                continue
            score = score_move(own_active, opponent_active, i)
            if score > best_score:
                best_score = score
                best = i
        return Action.move(best if best is not None else 0)

    def choose_with_taunt(self, own_active: Combatant, opponent_active: Combatant) -> Tuple[Action, str]:
        return self.choose_action(own_active, opponent_active), self.rng.choice(TAUNTS)


class RandomPolicy:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def choose_action(self, own_active: Combatant, opponent_active: Combatant) -> Action:
        usable: List[int] = [i for i, s in enumerate(own_active.moves) if s.pp > 0]
        return Action.move(self.rng.choice(usable) if usable else 0)


__all__ = ["OpponentPolicy","HeuristicPolicy","RandomPolicy","score_move","TAUNTS"]
