from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_bcrypt import Bcrypt
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# ============================================
# 擴展實例
# 在這裡建立,create_app 裡再 init_app,blueprint 才能 import limiter
# ============================================

cors = CORS()
jwt = JWTManager()
bcrypt = Bcrypt()

# storage 從 RATELIMIT_STORAGE_URI 讀 (開發用 memory://,production 用 Redis)
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"],
    strategy="fixed-window"
)
