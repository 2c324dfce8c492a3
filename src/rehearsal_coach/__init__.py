"""Rehearsal Coach: spoken story practice with structured feedback."""
