"""Snapshot capture and restore of whole drive hierarchies."""
