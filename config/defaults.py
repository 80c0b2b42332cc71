"""Default pipeline settings."""

DEFAULTS = {
    "max_iterations": 3,            # model calls per analysis run, never exceeded
    "prompt_budget": 200000,        # characters of file content per request
    "analysis_model": "claude-sonnet-4-5-20250929",
    "diagnosis_model": "claude-haiku-4-5-20251001",
    "max_tokens": 32768,
    "diagnosis_max_tokens": 1024,
    "manifest_name": "render.yaml",
    "required_config": ".replit",
    "commit_message": "feat: Initial project commit from Deployer",
    "github_api": "https://api.github.com",
    "render_api": "https://api.render.com/v1",
    "render_dashboard": "https://dashboard.render.com/web",
    "http_timeout": 30,
    "job_ttl": 3600,
    "max_jobs": 50,
}
