"""Interactive and non-interactive Vault setup wizard.

Import from the submodules (``wizard.runner``, ``wizard.prompts``, ...); the
package itself stays empty so that ``vault`` modules can use the prompts and
system helpers without pulling in the steps.
"""
