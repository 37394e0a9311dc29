# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Configuration support.

A Config is created from a JSON document of the form:

    {
      "cfg_class": "<class name, relative to fhome_protocol.config, or fully qualified>",
      "data": { <class-specific properties> }
    }

String values in "data" may reference "${env:NAME}" environment variables and the
"${config_dir}"-style properties of the ConfigContext; they are rendered before
the subclass's bake() method reads them.
"""

from typing import Optional, Any, TypeVar, Union, overload
from ..internal_types import Jsonable, JsonableDict, JsonableTypes

import os
import json

from .context import ConfigContext

_T = TypeVar('_T')

class Config:
  _template_json_data: Optional[JsonableDict] = None
  _json_data: Optional[JsonableDict] = None
  _context: Optional[ConfigContext] = None

  def __init__(self):
    pass

  def get_context(self) -> ConfigContext:
    result = self._context
    assert not result is None
    return result

  def bake(self):
    """Called after rendering. Subclasses read and validate their properties here."""
    pass

  @property
  def config_file(self) -> Optional[str]:
    """The fully qualified pathname of the configuration file from which this Config
       originated, or None if not from a file"""
    if self._context is None:
      return None
    return self._context.config_file

  @property
  def config_dir(self) -> Optional[str]:
    config_file = self.config_file
    if config_file is None:
      return None
    return os.path.dirname(config_file)

  def render(self):
    self._json_data = self.get_context().render_template_json_data(self._template_json_data)

  def render_and_bake(self, context: ConfigContext):
    self._context = context.clone()
    self.render()
    self.bake()

  def loads(self, ctx: ConfigContext, config_text: str):
    data = json.loads(config_text)
    if not isinstance(data, dict):
      raise ValueError(f"Config: expected JSON object for {type(self).__name__} data")
    self._template_json_data = data
    self.render_and_bake(ctx)

  def load_json_data(self, ctx: ConfigContext, json_data: JsonableDict):
    self.loads(ctx, json.dumps(json_data))

  _no_default = object()

  @overload
  def get_template_cfg_property(self, key: str, default: _T) -> Union[Jsonable, _T]: pass

  @overload
  def get_template_cfg_property(self, key: str) -> Jsonable: pass

  def get_template_cfg_property(self, key: str, default = _no_default):
    """Returns an unrendered property. Used for nested configs, which render themselves."""
    if not isinstance(self._template_json_data, dict):
      raise TypeError(f"Config: Expected raw config data '{key}' to be dict, got {type(self._template_json_data)}")
    result = self._template_json_data.get(key, default)
    if result is self._no_default:
      raise KeyError(f"Config: Raw property {key} does not exist and has no default")
    if not result is None and not isinstance(result, JsonableTypes):
      raise TypeError(f"Config: Expected property {key} to be JSON-able, got {type(result)}")
    return result

  @overload
  def get_cfg_property(self, key: str, default: _T) -> Union[Jsonable, _T]: pass

  @overload
  def get_cfg_property(self, key: str) -> Jsonable: pass

  def get_cfg_property(self, key: str, default = _no_default):
    if not isinstance(self._json_data, dict):
      raise TypeError(f"Config: Expected config data {key} to be dict, got {type(self._json_data)}")
    result = self._json_data.get(key, default)
    if result is self._no_default:
      raise KeyError(f"Config: Property {key} does not exist and has no default")
    if not result is None and not isinstance(result, JsonableTypes):
      raise TypeError(f"Config: Expected property {key} to be JSON-able, got {type(result)}")
    return result

  @overload
  def get_cfg_property_str(self, key: str, default: _T) -> Union[str, _T]: pass

  @overload
  def get_cfg_property_str(self, key: str) -> str: pass

  def get_cfg_property_str(self, key: str, default: Any=_no_default):
    result = self.get_cfg_property(key, default)
    if not isinstance(result, str):
      raise TypeError(f"Config: Expected property {key} to be str, got {type(result)}")
    return result

  @overload
  def get_cfg_property_float(self, key: str, default: _T) -> Union[float, _T]: pass

  @overload
  def get_cfg_property_float(self, key: str) -> float: pass

  def get_cfg_property_float(self, key: str, default: Any=_no_default):
    result = self.get_cfg_property(key, default)
    if isinstance(result, str):
      try:
        result = float(result)
      except ValueError:
        pass
    if isinstance(result, bool) or not isinstance(result, (int, float)):
      raise TypeError(f"Config: Expected property {key} to be float, got {type(result)}")
    return float(result)
