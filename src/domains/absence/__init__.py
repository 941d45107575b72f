# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Absence request domain package."""

from src.domains.absence.service import AbsenceService

__all__ = ["AbsenceService"]
