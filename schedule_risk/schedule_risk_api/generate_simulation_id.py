"""
Identifier for an archived simulation run.

Each call to MonteCarloService.run_simulation archives one record under a
fresh id. Callers keep the id to fetch the record again through
get_simulation_results, so it is generated here where both sides can import it.
"""
import uuid

def generate_simulation_id() -> str:
    """Generate a UUID4 string naming one simulation run."""
    return str(uuid.uuid4())


if __name__ == "__main__":
    print(generate_simulation_id())
