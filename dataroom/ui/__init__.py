"""NiceGUI pages for the data room.

Pages:
    - /signin, /signup: Local email/password auth
    - /: Data room (files and categories)
    - /assistant: Document chat with live pipeline status
    - /chatbot: General LLM chat

Page modules register their routes on import; `dataroom.main` imports them.
"""
