"""Speech bridge - Web Speech API events relayed over WebSocket."""
