# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the session ledger.

This package contains domain services that encapsulate business logic.
Each service takes an AsyncSession and commits its own writes through
``transactions.atomic``.

Domains:
    enrollment: Session entitlement ledger and one-time deferral.
    attendance: One mark per student per day, with session accounting.
    absence: Pre-approved planned absences.
    makeup: Makeup bookings and available makeup classes.
    class_: Class catalog, membership and the cancellation cascade.
    auth: Bearer token verification.
"""
