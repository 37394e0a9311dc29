from .base import Config
from .context import ConfigContext
from .passphrase import PassphraseConfig, LiteralPassphraseConfig, EnvPassphraseConfig
from .keyring_passphrase import KeyringPassphraseConfig
from .client_config import FhomeClientConfig, load_client_config, candidate_config_files
