from . import run_all_validations

run_all_validations()
