"""Browser-automation worker that polls the origin service for application jobs."""
