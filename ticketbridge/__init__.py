"""
Ticket Bridge: local print bridge between POS terminals and receipt printers.
"""

__version__ = "1.0.0"
