"""
Static lookup tables: course short names per faculty, allergen and meal flag names.
"""
import json
from importlib import resources


def load_json(filename):
    """Loads one of the bundled JSON tables."""
    with resources.files(__name__).joinpath(filename).open("r", encoding="utf-8") as f:
        return json.load(f)
