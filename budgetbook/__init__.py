"""
Budgetbook - Source Package

A personal budgeting assistant that tracks monthly cash flow and
a yearly financial-planning worksheet.

DESIGN PRINCIPLES:
1. Money is integer cents, always
2. Engines are pure: no I/O, no hidden state
3. "Not computable" is an answer, never a zero
4. Reject a bad reorder whole, never half-apply it
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budgetbook Team"
