# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Configuration support for retrieving a secret passphrase (the cloud password or the resource password)."""

from typing import Optional

from ..util import full_type
from .base import Config

class PassphraseConfig(Config):
  _default_passphrase_cfg: Optional['PassphraseConfig'] = None

  def bake(self):
    default_cfg_data = self.get_template_cfg_property('default_passphrase_cfg', None)
    if not default_cfg_data is None:
      self._default_passphrase_cfg = self.get_context().load_json_data(default_cfg_data, required_type=PassphraseConfig)

  def get_passphrase(self) -> str:
    """Returns the passphrase. Raises KeyError if it is not available."""
    raise NotImplementedError(f"{full_type(self)} does not implement get_passphrase")

  def set_passphrase(self, s: str):
    raise NotImplementedError(f"{full_type(self)} does not implement set_passphrase")

  def delete_passphrase(self):
    raise NotImplementedError(f"{full_type(self)} does not implement delete_passphrase")

  def passphrase_exists(self) -> bool:
    try:
      self.get_passphrase()
    except KeyError:
      return False
    return True

  def get_default_passphrase(self, missing_msg: str) -> str:
    """Falls back to default_passphrase_cfg, raising KeyError(missing_msg) if there is none."""
    if self._default_passphrase_cfg is None:
      raise KeyError(missing_msg)
    try:
      return self._default_passphrase_cfg.get_passphrase()
    except KeyError as e:
      raise KeyError(missing_msg) from e

  def describe(self) -> str:
    """A description of where the passphrase comes from, safe to display."""
    return type(self).__name__

class LiteralPassphraseConfig(PassphraseConfig):
  """A passphrase given directly in the configuration document (typically as an "${env:NAME}" reference)."""
  _passphrase: Optional[str] = None

  def bake(self):
    super().bake()
    self._passphrase = self.get_cfg_property_str('passphrase')

  def get_passphrase(self) -> str:
    assert not self._passphrase is None
    return self._passphrase

  def describe(self) -> str:
    return "literal passphrase"

class EnvPassphraseConfig(PassphraseConfig):
  """A passphrase read from an environment variable (as captured by the ConfigContext)."""
  _var: Optional[str] = None

  def bake(self):
    super().bake()
    self._var = self.get_cfg_property_str('var')

  @property
  def var(self) -> str:
    assert not self._var is None
    return self._var

  def get_passphrase(self) -> str:
    result = self.get_context().getenv(self.var)
    if result is None or result == "":
      return self.get_default_passphrase(f"{self.var} is not set")
    return result

  def describe(self) -> str:
    return f"environment variable {self.var}"
