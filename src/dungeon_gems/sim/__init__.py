"""Headless game engine: rooms, encounters, combat, runs, and simulation."""
