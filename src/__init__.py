"""Session ledger backend.

Tracks paid learning-session entitlements per enrollment and reconciles
them against attendance, planned absences, makeup sessions, deferrals
and class cancellations.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
