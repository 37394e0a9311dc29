# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Configuration of an F&Home client: account email, service endpoint, and where the two passwords come from.

Example configuration file (~/.config/fhome/config.json):

    {
      "cfg_class": "FhomeClientConfig",
      "data": {
        "email": "me@example.com",
        "cloud_passphrase_cfg": {
          "cfg_class": "KeyringPassphraseConfig",
          "data": { "key": "me@example.com/cloud" }
        },
        "resource_passphrase_cfg": {
          "cfg_class": "EnvPassphraseConfig",
          "data": { "var": "FHOME_RESOURCE_PASSWORD" }
        }
      }
    }

With no configuration file, everything is read from the FHOME_EMAIL, FHOME_CLOUD_PASSWORD
and FHOME_RESOURCE_PASSWORD environment variables.
"""

from typing import Optional, Dict, List
from ..internal_types import JsonableDict

import os

from ..constants import (
    FHOME_URL,
    DEFAULT_HANDSHAKE_TIMEOUT,
    ENV_EMAIL,
    ENV_CLOUD_PASSWORD,
    ENV_RESOURCE_PASSWORD,
  )
from ..fhome_connection import ConnectFunc
from ..client import FhomeClient, connect
from .base import Config
from .context import ConfigContext
from .passphrase import PassphraseConfig

USER_CONFIG_FILE = "~/.config/fhome/config.json"
SYSTEM_CONFIG_FILE = "/etc/fhome/config.json"

def env_passphrase_cfg_data(var: str) -> JsonableDict:
  return { 'cfg_class': 'EnvPassphraseConfig', 'data': { 'var': var } }

class FhomeClientConfig(Config):
  _email: str = ""
  _email_env_var: Optional[str] = None
  _url: str = FHOME_URL
  _handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT
  _cloud_passphrase_cfg: Optional[PassphraseConfig] = None
  _resource_passphrase_cfg: Optional[PassphraseConfig] = None

  def bake(self):
    ctx = self.get_context()
    self._email = self.get_cfg_property_str('email', "")
    email_env_var = self.get_cfg_property('email_env_var', None)
    if not email_env_var is None:
      if not isinstance(email_env_var, str):
        raise TypeError(f"Config: Expected property email_env_var to be str, got {type(email_env_var)}")
      self._email_env_var = email_env_var
      if self._email == "":
        self._email = ctx.getenv(email_env_var, "") or ""
    self._url = self.get_cfg_property_str('url', FHOME_URL)
    self._handshake_timeout = self.get_cfg_property_float('handshake_timeout', DEFAULT_HANDSHAKE_TIMEOUT)
    self._cloud_passphrase_cfg = self._load_passphrase_cfg('cloud_passphrase_cfg', ENV_CLOUD_PASSWORD)
    self._resource_passphrase_cfg = self._load_passphrase_cfg('resource_passphrase_cfg', ENV_RESOURCE_PASSWORD)

  def _load_passphrase_cfg(self, key: str, default_var: str) -> PassphraseConfig:
    cfg_data = self.get_template_cfg_property(key, None)
    if cfg_data is None:
      cfg_data = env_passphrase_cfg_data(default_var)
    return self.get_context().load_json_data(cfg_data, required_type=PassphraseConfig)

  @classmethod
  def from_env(cls, os_environ: Optional[Dict[str, str]]=None) -> 'FhomeClientConfig':
    """Creates a configuration that reads everything from FHOME_EMAIL, FHOME_CLOUD_PASSWORD and
       FHOME_RESOURCE_PASSWORD. Missing variables are reported by verify(), not here."""
    ctx = ConfigContext(os_environ=os_environ)
    return ctx.load_json_data(
        {
          'cfg_class': 'FhomeClientConfig',
          'data': {
            'email_env_var': ENV_EMAIL,
            'cloud_passphrase_cfg': env_passphrase_cfg_data(ENV_CLOUD_PASSWORD),
            'resource_passphrase_cfg': env_passphrase_cfg_data(ENV_RESOURCE_PASSWORD),
          },
        },
        required_type=cls
      )

  @property
  def email(self) -> str:
    return self._email

  @property
  def url(self) -> str:
    return self._url

  @property
  def handshake_timeout(self) -> float:
    return self._handshake_timeout

  @property
  def cloud_passphrase_cfg(self) -> PassphraseConfig:
    assert not self._cloud_passphrase_cfg is None
    return self._cloud_passphrase_cfg

  @property
  def resource_passphrase_cfg(self) -> PassphraseConfig:
    assert not self._resource_passphrase_cfg is None
    return self._resource_passphrase_cfg

  def get_cloud_password(self) -> str:
    return self.cloud_passphrase_cfg.get_passphrase()

  def get_resource_password(self) -> str:
    return self.resource_passphrase_cfg.get_passphrase()

  def verify(self):
    """Raises ValueError naming the first setting that is missing."""
    if self._email == "":
      raise ValueError(f"{self._email_env_var} is not set" if self._email_env_var else "email is not set")
    for cfg in (self.cloud_passphrase_cfg, self.resource_passphrase_cfg):
      try:
        cfg.get_passphrase()
      except KeyError as e:
        raise ValueError(e.args[0] if len(e.args) > 0 else str(e)) from e

  def describe(self) -> JsonableDict:
    """A summary of the configuration that never includes the passwords."""
    return {
        'config_file': self.config_file,
        'email': self._email,
        'url': self._url,
        'handshake_timeout': self._handshake_timeout,
        'cloud_password': self.cloud_passphrase_cfg.describe(),
        'resource_password': self.resource_passphrase_cfg.describe(),
      }

  async def connect(self, connect_func: Optional[ConnectFunc]=None) -> FhomeClient:
    """Verifies the configuration, then logs in. See fhome_protocol.connect()."""
    self.verify()
    return await connect(
        self._email,
        self.get_cloud_password(),
        self.get_resource_password(),
        url=self._url,
        handshake_timeout=self._handshake_timeout,
        connect_func=connect_func,
      )

def candidate_config_files(system: bool=True, user: bool=True) -> List[str]:
  """The default configuration file locations, in priority order."""
  result: List[str] = []
  if user:
    result.append(os.path.expanduser(USER_CONFIG_FILE))
  if system:
    result.append(SYSTEM_CONFIG_FILE)
  return result

def load_client_config(
      config_file: Optional[str]=None,
      system: bool=True,
      user: bool=True,
      ctx: Optional[ConfigContext]=None
    ) -> FhomeClientConfig:
  """Loads config_file if given; otherwise the first default configuration file that exists;
     otherwise falls back to FhomeClientConfig.from_env()."""
  if ctx is None:
    ctx = ConfigContext()
  if config_file is None:
    for candidate in candidate_config_files(system=system, user=user):
      if os.path.exists(candidate):
        config_file = candidate
        break
  if config_file is None:
    return FhomeClientConfig.from_env(os_environ={ k[4:]: v for k, v in ctx.items() if k.startswith('env:') })
  return ctx.load_file(config_file, required_type=FhomeClientConfig)
