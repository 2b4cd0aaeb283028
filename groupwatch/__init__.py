"""
Group Watch backend.

Groups of users suggest titles ("picks"), vote and mark them watched, and
chat with mentions, reactions and shared titles. The ``client`` subpackage
keeps a local view of one group in sync by polling the HTTP API.
"""
