from geoboard.db.session import SessionLocal
from geoboard.services.rankings import rebuild_aggregates


def main():
    db = SessionLocal()
    try:
        applied = rebuild_aggregates(db)
        db.commit()
        print(f"ok: aggregates rebuilt from {applied} results")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
