"""
Palette Master Package
======================

Headless simulation core for a color mixing puzzle game. Bubbles drift,
merge and split, wavefronts spread and interfere, and the resulting mixed
color is scored against a target.

All tunable parameters are in game_config.yaml.
"""
