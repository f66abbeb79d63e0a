"""PRD Test Case Automation — iterative LLM refinement of requirements and test cases."""

__version__ = "0.1.0"
