"""
Streamlit UI package: admin dashboard, student portal and messaging panel.

Pages only render state and forward user input to ``arrival.controllers``.
"""

from __future__ import annotations
