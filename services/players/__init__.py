"""
Players: one runnable service per supported remote media player.

A player service does NOT control playback on its own.  It follows a media
player running elsewhere (MPC-HC, VLC) through its HTTP interface, pushes what
is playing (file, play/pause, duration, position, speed) to the UI over
WebSocket, and forwards commands from the UI back to the player.

Current players:
  auto.py - whichever player config.json player.type names
  mpc.py  - MPC-HC / MPC-BE web interface (port 13579)
  vlc.py  - VLC HTTP interface (port 8080, password required)
"""
