"""Listing discovery engine: search, filtering and personalised ranking."""
