from flask import Blueprint

tasker_bp = Blueprint("tasker", __name__)
