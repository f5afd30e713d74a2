"""NiceGUI interface - thin visualization layer for chat interactions.

Responsibilities:
    - Chat message display with streaming support
    - Model selection and new-chat control
    - Copy-to-clipboard and toast notifications

Contains no business logic. Renders ChatSession snapshots and forwards
user actions to the session.
"""
