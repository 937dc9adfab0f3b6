"""Meeting notes to design document updates.

Provides the request/result schemas, the model-answer parser, and the
MeetingSummarizer pipeline that appends meeting outcomes to Confluence.
"""
