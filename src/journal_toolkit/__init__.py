"""
knowMe journal toolkit.

'conversation_database' holds the conversation store and its storage backends,
'api' exposes it over HTTP, 'voice' wraps the speech service and 'analytics'
builds read-only reports.
"""
