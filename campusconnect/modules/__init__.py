"""
Domain modules: the XP/Leveling engine and the services built on it.

- progress: XP deltas, levels, XP history
- missions: weekly missions and their rewards
- activity: college views and mentor sessions
- leaderboard: ranking by XP
"""
