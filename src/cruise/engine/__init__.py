"""Round simulation engine for CRUISE."""

from cruise.engine.sequencer import MultiplierSequencer, SequencerState, plan_next
from cruise.engine.kinematics import Obstacle, ObstacleField, ObstacleStatus, ShipGeometry
from cruise.engine.collision import CollisionResolver, Contact, ContactKind
from cruise.engine.ledger import CommandResult, Ledger, RejectReason
from cruise.engine.timers import Scheduler
from cruise.engine.round import ObstacleView, Round, RoundEngine, RoundSnapshot

__all__ = [
    # Sequencer
    "MultiplierSequencer",
    "SequencerState",
    "plan_next",
    # Kinematics
    "Obstacle",
    "ObstacleField",
    "ObstacleStatus",
    "ShipGeometry",
    # Collision
    "CollisionResolver",
    "Contact",
    "ContactKind",
    # Ledger
    "CommandResult",
    "Ledger",
    "RejectReason",
    # Timers
    "Scheduler",
    # Round
    "ObstacleView",
    "Round",
    "RoundEngine",
    "RoundSnapshot",
]
