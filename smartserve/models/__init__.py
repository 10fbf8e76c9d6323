"""
SmartServe — model package.

Holds the shared Flask-SQLAlchemy instance. Model modules import ``db``
from here; ``create_app`` binds it with ``db.init_app(app)``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
