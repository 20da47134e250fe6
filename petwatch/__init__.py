"""Community lost-pet sightings with nearby alerts."""

__version__ = "0.1.0"
