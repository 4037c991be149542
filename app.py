# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db notas_entrada.db
  python app.py nota criar --fornecedor "Distribuidora X" --responsavel Ana --tipo-pagamento POS
  python app.py nota importar NE-2025-00001 produtos.xlsx --ator Ana
  python app.py conferencia confirmar NE-2025-00001 PROD-NE-2025-00001-001 --ator Ana
  python app.py triagem NE-2025-00001 decisoes.json --ator Bruno
"""

from nota_entrada.adapters.cli import main

if __name__ == "__main__":
    main()
