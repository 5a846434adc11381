"""Token-gated image upload and Referer-gated image retrieval over HTTP."""
