"""
Controle Financeiro - Source Package

A personal-finance tracker: users sign in, record income and expense
movements, and review them through a dashboard and monthly reports.

DESIGN PRINCIPLES:
1. Every read and write is scoped to the signed-in user
2. Invalid input never reaches the store
3. Bad stored data degrades to a skipped row, never a broken page
4. Identity and storage backends are swappable
"""

__version__ = "1.0.0"
__author__ = "Controle Financeiro Team"
