# Sample essay offered by the "sample" command and "analyze --sample".

SAMPLE_ESSAY = """A persistência da violência contra a mulher na sociedade brasileira é um problema grave e complexo que exige um debate sério e contínuo. Arraigada em uma cultura patriarcal, essa forma de agressão se manifesta de diversas maneiras, desde o assédio verbal até o feminicídio, deixando marcas profundas nas vítimas e em toda a sociedade. É fundamental, portanto, analisar as causas dessa violência e propor caminhos para sua erradicação.

Primeiramente, é preciso reconhecer que a desigualdade de gênero é a principal causa da violência contra a mulher. A ideia de que homens são superiores e detêm o poder sobre as mulheres legitima atitudes de controle e agressão. Essa mentalidade é reforçada por piadas machistas, pela objetificação do corpo feminino na mídia e pela falta de representatividade feminina em espaços de poder. Enquanto essa estrutura de pensamento não for desconstruída, a violência continuará a encontrar terreno fértil para prosperar.

Além disso, a ineficácia de políticas públicas e a morosidade do sistema judiciário contribuem para a perpetuação do problema. Embora a Lei Maria da Penha represente um avanço significativo, sua aplicação ainda enfrenta obstáculos, como a falta de delegacias especializadas e de preparo dos agentes para acolher as vítimas de forma humanizada. A impunidade dos agressores envia uma mensagem perigosa de que a violência é tolerável, desestimulando as denúncias e aumentando a vulnerabilidade das mulheres.

Diante do exposto, é urgente que o Estado e a sociedade civil atuem em conjunto para combater a violência contra a mulher. O Governo Federal deve investir na ampliação e no fortalecimento da rede de proteção, com mais Delegacias da Mulher, casas-abrigo e centros de referência, além de promover campanhas de conscientização que desmistifiquem a cultura do machismo. A sociedade, por sua vez, tem o papel de educar as novas gerações para o respeito e a igualdade de gênero, começando dentro de casa e nas escolas. Somente com ações integradas e um compromisso coletivo será possível construir uma sociedade onde as mulheres possam viver livres do medo e da violência.
"""
