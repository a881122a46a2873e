# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""MessHub Server - registration, OTP verification and password reset API."""

__version__ = "0.1.0"
