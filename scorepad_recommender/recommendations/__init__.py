"""
Recommendation engines: turn learned ranked lists into suggestions.

Modules
-------
voting           : Voter dataclass + calculate_scores() + rank_candidates()
                   — weighted positional voting, pure functions.
context          : ContextResolver — situational context → voter set.
players          : PlayerRecommender — chained player selection, plus
                   apply_player_suggestions() for seating new sessions.
counts           : CountRecommender — likely player counts.
locations        : LocationRecommender — likely location names.
colors           : ColorRecommender — per-player color ranking.
color_assignment : assign_colors() — conflict-free colors for a whole table.
"""
