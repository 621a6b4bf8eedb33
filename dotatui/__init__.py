"""
dotatui - OpenDota terminal dashboard

Queries the OpenDota statistics API for player profiles, recent matches and
match details, and renders them as an interactive terminal UI with inline
hero, item and avatar images.
"""

__version__ = "0.3.0"
