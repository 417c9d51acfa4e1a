# seed_employees.py

from beneficios import create_app
from beneficios.seed import seed_employees

app = create_app()

with app.app_context():
    path = app.config['SEED_JSON_PATH']
    print(f"Iniciando a carga de funcionários a partir de '{path}'...")

    result = seed_employees(path)

    print("\n=====================================================")
    print("  Carga de funcionários concluída!  ")
    print(f"  Criados: {result['created']}")
    print(f"  Atualizados: {result['updated']}")
    print(f"  Total no arquivo: {result['total']}")
    print("=====================================================")
