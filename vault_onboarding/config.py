import os
from dotenv import load_dotenv
import os.path

# Project root holds the .env file: the source checkout when running from one
# (or an editable install), otherwise the working directory
_SOURCE_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
PROJECT_ROOT = os.environ.get(
    'PROJECT_ROOT',
    _SOURCE_ROOT if os.path.exists(os.path.join(_SOURCE_ROOT, 'setup.py')) else os.getcwd(),
)
dotenv_path = os.path.join(PROJECT_ROOT, '.env')
load_dotenv(dotenv_path=dotenv_path)

# --- Vault server ---
VAULT_ADDR = os.environ.get('VAULT_ADDR', 'http://localhost:8200')
VAULT_TOKEN = os.environ.get('VAULT_TOKEN')
VAULT_TIMEOUT = int(os.environ.get('VAULT_TIMEOUT', 30))
VAULT_SECRET_MOUNT = os.environ.get('VAULT_SECRET_MOUNT', 'secret')
VAULT_SECRET_PATH = os.environ.get('VAULT_SECRET_PATH', 'dev')

# Dev-mode server started with -dev-root-token-id=root
VAULT_DEV_ROOT_TOKEN = 'root'

# --- GitHub authentication ---
GITHUB_TOKEN = os.environ.get('GITHUB_TOKEN')
GITHUB_ORGANIZATION = os.environ.get('GITHUB_ORGANIZATION')

# --- Docker Compose ---
VAULT_SERVICE_NAME = os.environ.get('VAULT_SERVICE_NAME', 'vault-dev')
COMPOSE_FILE = os.environ.get('COMPOSE_FILE')

# --- Readiness polling ---
VAULT_READY_ATTEMPTS = int(os.environ.get('VAULT_READY_ATTEMPTS', 30))
VAULT_READY_INTERVAL = float(os.environ.get('VAULT_READY_INTERVAL', 2.0))

# --- File locations ---
# Writable state (mode config, unseal keys) lives in the project's data dir
DATA_DIR = os.environ.get('VAULT_DATA_DIR', os.path.join(PROJECT_ROOT, 'data'))
# Defaults shipped with the package
PACKAGE_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')


def default_data_file(*parts):
    """Path of a data file, preferring the project's copy over the packaged one."""
    project_file = os.path.join(DATA_DIR, *parts)
    if os.path.exists(project_file):
        return project_file
    return os.path.join(PACKAGE_DATA_DIR, *parts)


ENV_FILE = os.environ.get('ENV_FILE', dotenv_path)
SECRET_PATTERNS_FILE = os.environ.get(
    'SECRET_PATTERNS_FILE',
    default_data_file('secret-patterns', 'secret-patterns.json'),
)
VAULT_MODE_CONF = os.environ.get(
    'VAULT_MODE_CONF', os.path.join(DATA_DIR, 'vault-mode.conf')
)
VAULT_UNSEAL_KEYS_FILE = os.environ.get(
    'VAULT_UNSEAL_KEYS_FILE', os.path.join(DATA_DIR, 'vault-unseal-keys.json')
)
VAULT_TEMPLATE_SEED_FILE = os.environ.get(
    'VAULT_TEMPLATE_SEED_FILE',
    default_data_file('vault-data.template', 'seed-secrets.json'),
)
VAULT_SECRETS_EXPORT_FILE = os.environ.get(
    'ENV_OUTPUT_FILE', os.path.join(DATA_DIR, 'vault-secrets.env')
)
