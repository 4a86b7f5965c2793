# Overview: Shared extension instances; bound to the app in create_app().

from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Stock, order and return writes all go through this one session.
db = SQLAlchemy()
migrate = Migrate()
