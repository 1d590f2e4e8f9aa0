"""
QueueTicket - queue number distribution and waiting-room display.

Distributors claim a queue name with a password, issue sequential
tickets and call them; patients follow their ticket through a display
link; a small document server keeps the JSON files.
"""

__version__ = "1.0.0"
