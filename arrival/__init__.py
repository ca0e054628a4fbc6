"""
Arrival Console.

Admin dashboard and student portal for the study-abroad arrival checklist
backend. All data lives behind the backend REST API; this package only reads
it, renders it, and issues mutations.
"""

from __future__ import annotations

__version__ = "0.4.0"
