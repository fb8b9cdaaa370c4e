"""
Learning primitives: pure, storage-agnostic update rules.

Modules
-------
ranking    : promote() — count-bounded "halving jump" rank promotion.
confidence : calculate_confidence() — per-list trust adaptation.
weights    : adjust_weight() + penalty_factor() — global factor weights.
window     : prediction_window() — top-N window per relation kind.
bounds     : clamp_scalar() + round_half_up() — shared [0.2, 5.0] bounds.
"""
