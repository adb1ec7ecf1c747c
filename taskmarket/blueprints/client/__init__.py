from flask import Blueprint

client_bp = Blueprint("client", __name__)
