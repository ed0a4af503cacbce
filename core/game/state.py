"""Round state enumeration and control derivation."""

from dataclasses import dataclass
from enum import Enum, auto


class RoundState(Enum):
    """
    Round state machine states.

    Flow: BETTING → DEALING → PLAYER_TURN → DEALER_TURN → SETTLED → (reset) BETTING
    """

    # Waiting for a wager
    BETTING = auto()

    # Initial four cards being dealt
    DEALING = auto()

    # Player hits or stands
    PLAYER_TURN = auto()

    # Dealer draws to 17
    DEALER_TURN = auto()

    # Outcome decided, waiting for reset
    SETTLED = auto()

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()


# State machine transitions, in the form transitions.Machine takes them
TRANSITIONS = [
    {"trigger": "start_dealing", "source": "betting", "dest": "dealing"},
    {"trigger": "begin_player_turn", "source": "dealing", "dest": "player_turn"},
    {"trigger": "player_busts", "source": "player_turn", "dest": "settled"},
    {"trigger": "player_stands", "source": "player_turn", "dest": "dealer_turn"},
    {"trigger": "dealer_done", "source": "dealer_turn", "dest": "settled"},
    {"trigger": "abandon", "source": ["dealing", "player_turn", "dealer_turn"], "dest": "settled"},
    {"trigger": "new_round", "source": "settled", "dest": "betting"},
]


def _valid_transitions() -> dict[RoundState, set[RoundState]]:
    valid: dict[RoundState, set[RoundState]] = {state: set() for state in RoundState}
    for transition in TRANSITIONS:
        sources = transition["source"]
        if isinstance(sources, str):
            sources = [sources]
        for source in sources:
            valid[RoundState[source.upper()]].add(RoundState[transition["dest"].upper()])
    return valid


VALID_TRANSITIONS = _valid_transitions()


def is_valid_transition(from_state: RoundState, to_state: RoundState) -> bool:
    """
    Check if a state transition is valid.

    Args:
        from_state: Current state
        to_state: Desired state

    Returns:
        True if the transition is allowed
    """
    return to_state in VALID_TRANSITIONS.get(from_state, set())


@dataclass(frozen=True)
class Controls:
    """Which player controls are enabled."""

    can_bet: bool = False
    can_hit: bool = False
    can_stand: bool = False
    can_reset: bool = False


def controls_for(state: RoundState, player_at_21: bool = False, abandoned: bool = False) -> Controls:
    """
    Derive control enablement from the round state.

    Args:
        state: Current round state
        player_at_21: Player's visible total is exactly 21 (hit disabled)
        abandoned: The deck ran out and the round can only be reset
    """
    if abandoned:
        return Controls(can_reset=True)
    if state == RoundState.BETTING:
        return Controls(can_bet=True)
    if state == RoundState.PLAYER_TURN:
        return Controls(can_hit=not player_at_21, can_stand=True)
    if state == RoundState.SETTLED:
        return Controls(can_reset=True)
    return Controls()
