"""Configuration: settings, constants, database wiring."""
