from geoboard.db.session import SessionLocal
from geoboard.services.duels import recalculate_all_duel_ranks
from geoboard.services.rankings import recalculate_all_ranks


def main():
    db = SessionLocal()
    try:
        ranking_parts = recalculate_all_ranks(db)
        duel_parts = recalculate_all_duel_ranks(db)
        db.commit()
        print(f"ok: ranks recomputed ({ranking_parts} ranking partitions, {duel_parts} duel partitions)")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
