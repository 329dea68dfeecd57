# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later


__all__ = 'InvalidMessageError',  # noqa: COM818


class InvalidMessageError(ValueError):
    """Raised when data cannot be deserialized as the requested message."""
