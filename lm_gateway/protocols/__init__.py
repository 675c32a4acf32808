"""Wire protocols served by the gateway.

Each protocol converts its request shape to upstream messages, then renders
the upstream fragments back as a JSON body or an SSE stream.
"""
