"""GenMedia Bot: relay chat commands to Imagen and Veo, deliver the media back.

WHY: Users in a team channel want to generate images and short videos
without leaving chat. The remote generation API is request/response for
images but long-running for video, so somebody has to submit, poll,
download, upload and clean up. This package does that.

HOW: Four layers: a media API client (api), the generation flows and
command dispatcher (core), the chat adapter (slack), and a terminal CLI
for one-off runs. Flows only talk to the chat through the small
Conversation/StatusMessage interface, so they are testable without Slack.

RULES:
- One inbound command = one flow coroutine, no shared mutable state
- Configuration is loaded once into a Settings object and passed in
- Temp files are always scheduled for removal after delivery
"""

__version__ = "0.1.0"
