"""
ShapeNet: turn-based shape battle engine.
Packages:
- core (types, errors, logging, paths)
- data (catalog templates and cached loaders)
- battle (combatants, resolver, replay state, opponent policies)
- net (wire protocol, channels, host/guest session coordinator)
- system (settings, roster persistence)
"""
__version__ = "0.3.0"
