# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT

"""Allow ``python -m proximity``."""

from proximity.cli import main

if __name__ == "__main__":
    main()
