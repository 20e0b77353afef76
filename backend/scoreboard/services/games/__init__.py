"""Game services for shared scoreboards.

Modules here hold player identity, team hierarchy, custom scoring letters,
the in-memory scoreboard editor, analytics, and the lifecycle operations
that persist them. HTTP routes call ``lifecycle``; everything else is plain
Python that tests exercise without a database.
"""
