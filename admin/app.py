#!/usr/bin/env python3
"""
Serverwave Console
Live console sessions for containerized game servers (Docker).
"""

import logging
import os

from serverwave_console import create_app
from serverwave_console.config import Config

logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = create_app()

if __name__ == '__main__':
    app.run(host=os.environ.get('HOST', '127.0.0.1'),
            port=int(os.environ.get('PORT', '5000')))
