"""JavaScript snippets evaluated inside the app runtime."""

import json

# Globals commonly installed by state, navigation and devtools libraries
KNOWN_DEBUG_GLOBALS = (
    "__APOLLO_CLIENT__",
    "__APOLLO_DEVTOOLS_GLOBAL_HOOK__",
    "__REDUX_STORE__",
    "__REDUX_DEVTOOLS_EXTENSION__",
    "__EXPO_ROUTER__",
    "__REACT_DEVTOOLS_GLOBAL_HOOK__",
    "__REACT_QUERY_CLIENT__",
    "__MOBX_DEVTOOLS_GLOBAL_HOOK__",
    "__RECOIL_DEVTOOLS_EXTENSION__",
    "__ZUSTAND_STORES__",
    "__DEV__",
    "__METRO_GLOBAL_PREFIX__",
    "HermesInternal",
    "nativeFabricUIManager",
)

LIST_GLOBALS_SCRIPT = """
(function () {
  var known = %s;
  var found = {};
  var other = [];
  for (var i = 0; i < known.length; i++) {
    if (typeof globalThis[known[i]] !== 'undefined') {
      found[known[i]] = typeof globalThis[known[i]];
    }
  }
  var names = Object.getOwnPropertyNames(globalThis);
  for (var j = 0; j < names.length; j++) {
    var name = names[j];
    if (name.indexOf('__') === 0 && !(name in found)) {
      other.push(name);
    }
  }
  other.sort();
  return JSON.stringify({ known: found, other: other });
})()
""" % json.dumps(list(KNOWN_DEBUG_GLOBALS))

# Reads property descriptors only, so getters and functions are never invoked
_INSPECT_GLOBAL_TEMPLATE = """
(function () {
  var name = %s;
  if (!(name in globalThis)) {
    return JSON.stringify({ name: name, exists: false });
  }
  var rootDesc;
  for (var holder = globalThis; holder && !rootDesc; holder = Object.getPrototypeOf(holder)) {
    rootDesc = Object.getOwnPropertyDescriptor(holder, name);
  }
  if (!rootDesc || !('value' in rootDesc)) {
    return JSON.stringify({
      name: name, exists: true, type: 'accessor', properties: [],
      getter: !!rootDesc && typeof rootDesc.get === 'function',
      setter: !!rootDesc && typeof rootDesc.set === 'function'
    });
  }
  var target = rootDesc.value;
  var info = { name: name, exists: true, type: target === null ? 'null' : typeof target, properties: [] };
  if (target === null || (typeof target !== 'object' && typeof target !== 'function')) {
    info.value = String(target);
    return JSON.stringify(info);
  }
  var seen = {};
  var level = 0;
  for (var obj = target; obj && obj !== Object.prototype && obj !== Function.prototype && level < 5;
       obj = Object.getPrototypeOf(obj), level++) {
    var keys = Object.getOwnPropertyNames(obj);
    for (var i = 0; i < keys.length; i++) {
      var key = keys[i];
      if (seen[key] || key === 'constructor') continue;
      seen[key] = true;
      var desc = Object.getOwnPropertyDescriptor(obj, key);
      var entry = { name: key, own: level === 0 };
      if ('value' in desc) {
        entry.type = desc.value === null ? 'null' : typeof desc.value;
        entry.callable = typeof desc.value === 'function';
      } else {
        entry.type = 'accessor';
        entry.callable = false;
        entry.getter = typeof desc.get === 'function';
        entry.setter = typeof desc.set === 'function';
      }
      info.properties.push(entry);
    }
  }
  return JSON.stringify(info);
})()
"""


def inspect_global_script(name: str) -> str:
    """Inspection script for one global; the name is embedded as a JSON string literal."""
    return _INSPECT_GLOBAL_TEMPLATE % json.dumps(name)
