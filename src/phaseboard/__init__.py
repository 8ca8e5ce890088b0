"""Phaseboard - Project phase and item board.

This package provides the ordered Phase/Item board of a project: drag
reordering with optimistic updates, cascading completion from items to
phases, embedded sub-item checklists, and the project activity feed, all
persisted to a relational store through an async data-access gateway.
"""

__version__ = "0.1.0"
