"""Timed multiple-choice trivia quiz for the terminal."""
