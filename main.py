"""
Main application entry point
"""

import os
import sys

from sqlalchemy import text

from gradportal import create_app
from gradportal.models import db
from gradportal.utils import log_info, log_error


def main():
    """Main application entry point"""
    app = create_app()

    # Test database connection
    with app.app_context():
        try:
            db.session.execute(text('SELECT 1'))
            log_info("Database connection available")
        except Exception as e:
            log_error("Database connection error", e)
            return False

    debug_mode = os.environ.get('FLASK_DEBUG', 'True').lower() in ['true', '1', 'on']
    app.run(
        host='0.0.0.0',
        port=int(os.environ.get('PORT', 5000)),
        debug=debug_mode
    )
    return True


if __name__ == '__main__':
    success = main()
    if not success:
        sys.exit(1)
