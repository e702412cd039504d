"""
DataGo game server
Spawn distribution, proximity visibility and capture arbitration behind a WebSocket transport
"""
