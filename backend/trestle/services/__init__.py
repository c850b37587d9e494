"""Scheduling engine: graph index, validation, CPM, roll-up and the mutation facade."""
