import logging

from app.db import Base, SessionLocal, engine
from app.services.bootstrap_service import run_bootstrap


logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s %(message)s')
logger = logging.getLogger('bootstrap')


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        result = run_bootstrap(db)
        principal = result['principal']
        logger.info('Upload directories ready under %s', result['upload_root'])
        if principal.get('seeded'):
            logger.info('Principal account seeded: user_id=%s email=%s', principal['user_id'], principal['email'])
        elif principal.get('reason') == 'principal_exists':
            logger.info('Principal seed skipped, account already present (user_id=%s)', principal['user_id'])
        else:
            logger.warning('Principal seed skipped: set PRINCIPAL_SEED_EMAIL to create the first principal')
    finally:
        db.close()


if __name__ == '__main__':
    main()
