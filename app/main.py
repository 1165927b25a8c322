from fastapi import FastAPI, Body
import uvicorn
from .mutation import DefaultRunAsUser
from .uid_mapping import UidResolver
from .utils import get_env_or_default, get_log_level, load_uid_mapping_config, log_admission_request
from .webhook import process_admission_request
import logging

# 配置日志
logging.basicConfig(
    level=get_log_level(),
    format='[%(asctime)s] %(levelname)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("webhook")

mapping_config = load_uid_mapping_config()
mutators = [DefaultRunAsUser(UidResolver(mapping_config))]

app = FastAPI(title="RunAsUser Injector")

@app.get("/")
async def health():
    return {"status": "healthy"}

# 同步处理函数，由FastAPI在线程池中执行
@app.post("/mutate")
def mutate(request: dict = Body(...)):
    logger.info("Received admission request")
    log_admission_request(request)
    return process_admission_request(request, mutators)

if __name__ == "__main__":
    logger.info(f"Using UID mapping ConfigMap {mapping_config.namespace}/{mapping_config.configmap_name}")
    uvicorn.run("app.main:app", host="0.0.0.0", port=int(get_env_or_default("PORT", "8443")))
