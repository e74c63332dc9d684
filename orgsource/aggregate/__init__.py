"""Organization aggregate: fold, decide and plan"""
from .coordination import link_of, plan, unlink
from .invariants import check_invariants
from .reducer import apply, fold
from .transitions import ALLOWED_TRANSITIONS, INITIAL_STATUS, allowed_targets, can_transition
from .validator import DecisionContext, decide, event_id_for, is_single_aggregate
