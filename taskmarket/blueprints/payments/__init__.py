from flask import Blueprint

payments_bp = Blueprint("payments", __name__)
