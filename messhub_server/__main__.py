# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Run the API server. Run: python -m messhub_server"""

import uvicorn

from messhub_server.config import settings


def main() -> None:
    uvicorn.run(
        "messhub_server.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
