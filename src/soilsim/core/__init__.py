"""Core definitions shared by all soilsim components."""
