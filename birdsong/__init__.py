"""Bird Song Explorer: a daily, location-aware bird program for kids."""

__version__ = "0.1.0"
