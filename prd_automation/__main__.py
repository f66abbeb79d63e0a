"""Allow running as: python -m prd_automation"""

from prd_automation.main import cli

if __name__ == "__main__":
    cli()
