"""librarydesk - circulation desk for a lending library.

Tracks copies, member accounts, loans with due dates and fines,
per-copy reservation queues and member notifications.
"""

__version__ = "0.1.0"
