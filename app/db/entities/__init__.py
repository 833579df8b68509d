from app.db.entities import import_run, institution, institution_history  # noqa: F401
