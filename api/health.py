from flask import Blueprint

from models import storage

bp = Blueprint("health", __name__)

@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API and database are up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            database:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
      503:
        description: Database unreachable
    """
    if storage.ping():
        return {"status": "ok", "database": "ok", "version": "1.0.0"}, 200
    return {"status": "degraded", "database": "unavailable", "version": "1.0.0"}, 503
