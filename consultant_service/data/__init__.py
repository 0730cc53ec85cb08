"""Seed documents shipped for each API variant."""
