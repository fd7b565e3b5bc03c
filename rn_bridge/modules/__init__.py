"""
Bridge Modules

Discovery, transport, telemetry and execution building blocks composed by
rn_bridge.bridge.DebugBridge.
"""
