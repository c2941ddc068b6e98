"""Session and turn domain services.

HTTP routes and CLI commands call into TurnService; persistence and push
delivery are handed to it as explicit collaborators so the rules here stay
independent of Flask and of the storage backend.
"""
