"""lightcrawl: a light-budget dungeon exploration simulation.

The package holds the rendering-independent core: dungeon generation,
collision, fog of war, the light budget, orbs and the per-frame loop that
ties them together.
"""

__version__ = "0.1.0"
