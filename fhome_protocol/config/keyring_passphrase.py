# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Configuration support for retrieving a passphrase from the system keyring."""

from typing import Optional

import keyring

from ..constants import KEYRING_SERVICE
from .passphrase import PassphraseConfig

class KeyringPassphraseConfig(PassphraseConfig):
  """A passphrase stored in the system keyring under (service, key). The service defaults to "fhome";
     the key is typically the account email."""
  _keyring_service: Optional[str] = None
  _keyring_key: Optional[str] = None

  def bake(self):
    super().bake()
    self._keyring_service = self.get_cfg_property_str('service', KEYRING_SERVICE)
    self._keyring_key = self.get_cfg_property_str('key')

  def _missing_msg(self) -> str:
    return f"KeyringPassphraseConfig: service '{self._keyring_service}', key name '{self._keyring_key}' does not exist"

  def get_passphrase(self) -> str:
    assert not self._keyring_service is None
    assert not self._keyring_key is None
    result = keyring.get_password(self._keyring_service, self._keyring_key)
    if result is None:
      result = self.get_default_passphrase(self._missing_msg())
    return result

  def set_passphrase(self, s: str):
    assert not self._keyring_service is None
    assert not self._keyring_key is None
    keyring.set_password(self._keyring_service, self._keyring_key, s)

  def delete_passphrase(self):
    assert not self._keyring_service is None
    assert not self._keyring_key is None
    keyring.delete_password(self._keyring_service, self._keyring_key)

  def describe(self) -> str:
    return f"keyring service '{self._keyring_service}', key '{self._keyring_key}'"
