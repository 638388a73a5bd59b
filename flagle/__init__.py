"""Flagle: a daily flag guessing game revealed pixel by pixel."""
