"""
Point d'entrée principal pour l'application Camstream
Lance le serveur de développement Flask
"""
import os
import sys
from pathlib import Path

project_root = Path(__file__).parent.absolute()

# Chargement des variables d'environnement depuis .env si le fichier existe
env_file = project_root / '.env'
if env_file.exists():
    print(f"📁 Chargement des variables d'environnement depuis {env_file}")
    with open(env_file, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                os.environ.setdefault(key.strip(), value.strip())

from camstream.main import create_app


def main():
    """Fonction principale pour lancer l'application"""

    env = os.environ.get('FLASK_ENV', 'development')
    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 3000))
    debug = os.environ.get('DEBUG', 'True').lower() == 'true'

    print(f"🚀 Démarrage de Camstream")
    print(f"   Environnement: {env}")
    print(f"   Host: {host}")
    print(f"   Port: {port}")
    print(f"   Debug: {debug}")

    try:
        app = create_app(env)
        print(f"✅ Application créée avec succès")

        # threaded: les requêtes start/stop ne bloquent jamais sur une session
        app.run(
            host=host,
            port=port,
            debug=debug,
            threaded=True,
            use_reloader=False  # Un seul processus: le registre des sessions est en mémoire
        )

    except Exception as e:
        print(f"❌ Erreur lors du démarrage de l'application: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
