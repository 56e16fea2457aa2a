# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Proximity guard service: detection loop, HTTP routes and CLI."""
