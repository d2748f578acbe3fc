"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi run
    flask --app wsgi db upgrade
"""

from portfolio_tracker import create_app

app = create_app()
