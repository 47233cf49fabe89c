# run.py
from dotenv import load_dotenv
import os
basedir = os.path.abspath(os.path.dirname(__file__))
# 실행 디렉터리의 '.env' 파일을 먼저 로드한 뒤 앱을 생성합니다.
load_dotenv(dotenv_path=os.path.join(basedir, '.env'))

from storyfeed import create_app

app = create_app()

if __name__ == '__main__':
    host = os.getenv('FLASK_RUN_HOST', '127.0.0.1')
    port = int(os.getenv('FLASK_RUN_PORT', 5000))
    debug = app.config.get('DEBUG', False)
    # 디버그 리로더는 프로세스를 두 번 띄워 Firestore 구독이 중복되므로 끕니다.
    app.run(host=host, port=port, debug=debug, use_reloader=False)
