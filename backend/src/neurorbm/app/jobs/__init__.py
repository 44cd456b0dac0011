# backend/src/neurorbm/app/jobs/__init__.py
"""Comandos de línea (python -m neurorbm.app.jobs.<cmd>)."""
