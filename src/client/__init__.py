"""
Client Package

Terminal front end of the chat shell: the Textual application, the
console entry point and a scripted demo session. Everything it does goes
through the `bridge` package.
"""
