import os


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key')
    FLASK_ENV = os.environ.get('FLASK_ENV', 'development')

    if FLASK_ENV == 'development':
        DATABASE_URL = os.environ.get('DEV_DATABASE_URL', os.environ.get('DATABASE_URL'))
    else:
        DATABASE_URL = os.environ.get('PROD_DATABASE_URL', os.environ.get('DATABASE_URL'))

    if not DATABASE_URL:
        DATABASE_URL = 'sqlite:///game_station.db'

    # Remote ledger. An empty application id means local-only mode.
    LINERA_FAUCET_URL = os.environ.get('LINERA_FAUCET_URL',
                                       'https://faucet.testnet-conway.linera.net')
    LINERA_APP_ID = os.environ.get('LINERA_APP_ID', '')
    LINERA_STORAGE_URL = os.environ.get('LINERA_STORAGE_URL', '')
    REMOTE_TIMEOUT = float(os.environ.get('REMOTE_TIMEOUT', 10))

    CORS_ORIGINS = [origin for origin in os.environ.get('CORS_ORIGINS', '').split(',') if origin]

    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')


class TestConfig(Config):
    TESTING = True
    FLASK_ENV = 'development'
    DATABASE_URL = 'sqlite://'
    LINERA_APP_ID = ''
    LINERA_STORAGE_URL = ''
    LOG_FILE = None
